"""Prediction module blending the Elo and efficiency models."""

from nfl_forecast.prediction.predictor import (
    CONFIDENCE_TIERS,
    PredictionContext,
    calculate_accuracy,
    check_prediction,
    predict,
    predict_games,
)

__all__ = [
    "CONFIDENCE_TIERS",
    "PredictionContext",
    "calculate_accuracy",
    "check_prediction",
    "predict",
    "predict_games",
]
