"""Tests for the Elo rating model."""

import logging
import math

import pytest


class TestWinProbability:
    """Tests for the logistic expectation."""

    @pytest.mark.parametrize("rating", [1000.0, 1350.5, 1500.0, 1720.0])
    def test_equal_ratings_even(self, rating):
        from nfl_forecast.algorithm.elo import win_probability

        assert win_probability(rating, rating) == 0.5

    @pytest.mark.parametrize("a,b", [(1500, 1400), (1650, 1320), (1200, 1800)])
    def test_symmetric(self, a, b):
        """P(a beats b) + P(b beats a) == 1."""
        from nfl_forecast.algorithm.elo import win_probability

        assert win_probability(a, b) + win_probability(b, a) == pytest.approx(1.0)

    def test_two_hundred_point_favorite(self):
        from nfl_forecast.algorithm.elo import win_probability

        assert win_probability(1600, 1400) == pytest.approx(0.7597, abs=1e-4)


class TestInitializeRatings:
    """Tests for season-start ratings."""

    def test_fresh_table_at_base(self):
        from nfl_forecast.algorithm.elo import initialize_ratings

        table = initialize_ratings()

        assert len(table) == 32
        assert set(table.ratings.values()) == {1500.0}

    def test_regression_toward_mean(self):
        """Prior ratings keep a third of their distance from the base rating."""
        from nfl_forecast.algorithm.elo import initialize_ratings
        from nfl_forecast.data.models import EloRatingTable

        prior = EloRatingTable(ratings={"A": 1590.0, "B": 1410.0, "C": 1500.0})

        table = initialize_ratings(prior, teams=["A", "B", "C"])

        assert table.get("A") == pytest.approx(1530.0)
        assert table.get("B") == pytest.approx(1470.0)
        assert table.get("C") == 1500.0

    @pytest.mark.parametrize("regression", [0.1, 1 / 3, 0.5, 0.9])
    def test_regressed_ratings_strictly_closer(self, regression):
        from nfl_forecast.algorithm.elo import initialize_ratings
        from nfl_forecast.data.models import EloRatingTable, ModelConfig

        config = ModelConfig(elo_regression=regression)
        prior = EloRatingTable(ratings={"A": 1700.0, "B": 1250.0, "C": 1500.0})

        table = initialize_ratings(prior, teams=["A", "B", "C"], config=config)

        assert table.get("C") == 1500.0
        for team in ("A", "B"):
            assert abs(table.get(team) - 1500) < abs(prior.get(team) - 1500)

    def test_team_missing_from_prior_starts_at_base(self):
        from nfl_forecast.algorithm.elo import initialize_ratings
        from nfl_forecast.data.models import EloRatingTable

        table = initialize_ratings(EloRatingTable(ratings={"A": 1600.0}), teams=["A", "B"])

        assert table.get("B") == 1500.0


class TestMovMultiplier:
    """Tests for the margin-of-victory multiplier."""

    def test_favorite_win_damped(self):
        from nfl_forecast.algorithm.elo import mov_multiplier

        multiplier = mov_multiplier(20, 1600, 1400)

        assert multiplier == pytest.approx(math.log(21) * 2.2 / (0.2 + 2.2))

    def test_upset_not_damped(self):
        """The underdog winning gets the raw log multiplier."""
        from nfl_forecast.algorithm.elo import mov_multiplier

        assert mov_multiplier(20, 1400, 1600) == pytest.approx(math.log(21))

    def test_equal_ratings_not_damped(self):
        from nfl_forecast.algorithm.elo import mov_multiplier

        assert mov_multiplier(3, 1500, 1500) == pytest.approx(math.log(4))


class TestUpdateRatings:
    """Tests for applying a single result."""

    def test_zero_sum(self):
        from nfl_forecast.algorithm.elo import update_ratings
        from nfl_forecast.data.models import EloRatingTable

        table = EloRatingTable(ratings={"A": 1540.0, "B": 1475.0})

        updated = update_ratings(table, "B", "A", 24, 17)

        winner_gain = updated.get("B") - 1475.0
        loser_loss = updated.get("A") - 1540.0
        assert winner_gain > 0
        assert winner_gain == pytest.approx(-loser_loss)

    def test_favorite_blowout_damped_relative_to_upset(self):
        """1600 beating 1400 30-10 moves less than an even-matchup 30-10."""
        from nfl_forecast.algorithm.elo import update_ratings
        from nfl_forecast.data.models import EloRatingTable

        favorite = update_ratings(EloRatingTable(ratings={"W": 1600.0, "L": 1400.0}), "W", "L", 30, 10)
        even = update_ratings(EloRatingTable(ratings={"W": 1500.0, "L": 1500.0}), "W", "L", 30, 10)

        favorite_change = favorite.get("W") - 1600.0
        even_change = even.get("W") - 1500.0

        expected = 1 / (1 + 10 ** (-200 / 400))
        assert favorite_change == pytest.approx(
            20 * math.log(21) * (2.2 / (0.2 + 2.2)) * (1 - expected)
        )
        assert 0 < favorite_change < even_change

    def test_input_table_not_mutated(self):
        from nfl_forecast.algorithm.elo import update_ratings
        from nfl_forecast.data.models import EloRatingTable

        table = EloRatingTable(ratings={"A": 1500.0, "B": 1500.0})

        update_ratings(table, "A", "B", 21, 14)

        assert table.get("A") == 1500.0

    def test_unknown_team_returns_table_unchanged(self, caplog):
        from nfl_forecast.algorithm.elo import update_ratings
        from nfl_forecast.data.models import EloRatingTable

        table = EloRatingTable(ratings={"A": 1500.0})
        logger = logging.getLogger("test.elo")

        with caplog.at_level(logging.ERROR, logger="test.elo"):
            result = update_ratings(table, "A", "Nobody", 21, 14, logger=logger)

        assert result is table
        assert "Nobody" in caplog.text


class TestApplyResult:
    """Tests for home/away result application."""

    def test_away_win(self):
        from nfl_forecast.algorithm.elo import apply_result
        from nfl_forecast.data.models import EloRatingTable

        table = EloRatingTable(ratings={"H": 1500.0, "A": 1500.0})

        updated = apply_result(table, "H", "A", 10, 20)

        assert updated.get("A") > 1500.0
        assert updated.get("H") < 1500.0

    def test_tie_leaves_table_unchanged(self):
        from nfl_forecast.algorithm.elo import apply_result
        from nfl_forecast.data.models import EloRatingTable

        table = EloRatingTable(ratings={"H": 1500.0, "A": 1520.0})

        assert apply_result(table, "H", "A", 17, 17) is table


class TestProcessResults:
    """Tests for folding a season of results."""

    def test_order_of_input_does_not_matter(self, sample_games):
        """Games are sorted chronologically before folding."""
        from nfl_forecast.algorithm.elo import initialize_ratings, process_results

        table = initialize_ratings()

        forward = process_results(table, sample_games)
        backward = process_results(table, list(reversed(sample_games)))

        assert forward == backward

    def test_fold_order_changes_result(self):
        """Updates are not commutative, so chronology matters."""
        from nfl_forecast.algorithm.elo import update_ratings
        from nfl_forecast.data.models import EloRatingTable

        table = EloRatingTable(ratings={"A": 1500.0, "B": 1500.0, "C": 1500.0})

        first = update_ratings(update_ratings(table, "A", "B", 35, 3), "C", "A", 20, 17)
        second = update_ratings(update_ratings(table, "C", "A", 20, 17), "A", "B", 35, 3)

        assert first.get("A") != pytest.approx(second.get("A"))


class TestPredictGame:
    """Tests for Elo-only predictions."""

    def test_even_teams_home_edge(self):
        """Equal ratings: home field makes the home side a slight, low-confidence favorite."""
        from nfl_forecast.algorithm.elo import predict_game, initialize_ratings

        table = initialize_ratings()

        prediction = predict_game(table, "Green Bay Packers", "Chicago Bears")

        assert prediction.home_win_probability > 0.5
        assert prediction.home_win_probability + prediction.away_win_probability == pytest.approx(1.0)
        assert prediction.predicted_winner == "Green Bay Packers"
        assert prediction.confidence == "low"
        assert prediction.elo_difference == pytest.approx(25.0)
        assert prediction.predicted_score == (24, 23)

    def test_confidence_tiers(self):
        from nfl_forecast.algorithm.elo import predict_game
        from nfl_forecast.data.models import EloRatingTable

        table = EloRatingTable(ratings={"H": 1500.0, "M": 1450.0, "L": 1375.0, "X": 1600.0})

        assert predict_game(table, "H", "L").confidence == "high"  # 1525 vs 1375
        assert predict_game(table, "H", "M").confidence == "medium"  # 1525 vs 1450
        assert predict_game(table, "M", "H").confidence == "low"  # 1475 vs 1500

        road_favorite = predict_game(table, "L", "X")
        assert road_favorite.predicted_winner == "X"
        assert road_favorite.confidence == "high"

    def test_confidence_monotone_in_gap(self):
        """A wider Elo gap never lowers the confidence tier."""
        from nfl_forecast.algorithm.elo import predict_game
        from nfl_forecast.data.models import CONFIDENCE_LEVELS, EloRatingTable

        levels = []
        for gap in range(0, 300, 10):
            table = EloRatingTable(ratings={"H": 1500.0 + gap, "A": 1500.0})
            levels.append(CONFIDENCE_LEVELS[predict_game(table, "H", "A").confidence])

        assert levels == sorted(levels)

    def test_big_favorite_scores(self):
        """Scores shift by half the point spread each way and never go negative."""
        from nfl_forecast.algorithm.elo import predict_game
        from nfl_forecast.data.models import EloRatingTable

        table = EloRatingTable(ratings={"H": 3000.0, "A": 1000.0})

        prediction = predict_game(table, "H", "A")

        # (2000 + 25) / 25 = 81 point spread
        assert prediction.predicted_score == (64, 0)

    def test_unknown_team(self):
        from nfl_forecast.algorithm.elo import initialize_ratings, predict_game

        assert predict_game(initialize_ratings(), "Kansas City Chiefs", "Nobody") is None


class TestPowerRankings:
    """Tests for rating-ordered listings."""

    def test_ordered_by_rating(self):
        from nfl_forecast.algorithm.elo import power_rankings
        from nfl_forecast.data.models import EloRatingTable

        table = EloRatingTable(ratings={"A": 1480.0, "B": 1560.0, "C": 1500.0})

        assert power_rankings(table) == [(1, "B", 1560.0), (2, "C", 1500.0), (3, "A", 1480.0)]
