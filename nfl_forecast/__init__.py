"""NFL game forecasts from a blended Elo and efficiency model."""

__version__ = "0.1.0"
