"""Tests for the efficiency model."""

import pytest


def make_aggregate(team: str, games: int = 4, **kwargs):
    """Helper to create a TeamSeasonAggregate with derived fields set."""
    from nfl_forecast.data.models import TeamSeasonAggregate

    return TeamSeasonAggregate(team=team, games=games, **kwargs)


@pytest.fixture
def home():
    return make_aggregate(
        "Home",
        avg_total_yards=385,
        avg_points_for=27,
        avg_points_against=20,
        third_down_pct=45,
        red_zone_pct=60,
    )


@pytest.fixture
def away():
    return make_aggregate(
        "Away",
        avg_total_yards=315,
        avg_points_for=19,
        avg_points_against=25,
        third_down_pct=35,
        red_zone_pct=50,
    )


@pytest.fixture
def league():
    from nfl_forecast.data.models import LeagueAverage

    return LeagueAverage(avg_total_yards=350, avg_points_for=23, avg_points_against=23)


@pytest.fixture
def rankings():
    from nfl_forecast.data.models import Rankings

    return Rankings(
        rush_offense={"Home": 5, "Away": 20},
        pass_defense={"Home": 10, "Away": 25},
    )


class TestEfficiencyRating:
    """Tests for the composite efficiency rating."""

    def test_weighted_ratios(self, home, league):
        from nfl_forecast.algorithm.efficiency import efficiency_rating

        rating = efficiency_rating(home, league)

        expected = (385 / 350 * 0.35 + 23 / 20 * 0.35 + 27 / 23 * 0.30) * 1000
        assert rating == pytest.approx(expected)

    def test_league_average_team_rates_1000(self, league):
        from nfl_forecast.algorithm.efficiency import efficiency_rating

        team = make_aggregate("Mid", avg_total_yards=350, avg_points_for=23, avg_points_against=23)

        assert efficiency_rating(team, league) == pytest.approx(1000)

    def test_no_games_gets_base_rating(self, league):
        from nfl_forecast.algorithm.efficiency import efficiency_rating

        assert efficiency_rating(make_aggregate("New", games=0), league) == 1500

    def test_shutout_defense_does_not_divide_by_zero(self, league):
        from nfl_forecast.algorithm.efficiency import efficiency_rating

        team = make_aggregate("Wall", avg_total_yards=300, avg_points_for=10, avg_points_against=0)

        assert efficiency_rating(team, league) > 0

    def test_zero_league_averages_do_not_divide_by_zero(self):
        """League yards and points of 0 are floored at 1 as divisors."""
        from nfl_forecast.algorithm.efficiency import efficiency_rating
        from nfl_forecast.data.models import LeagueAverage

        league = LeagueAverage(avg_total_yards=0, avg_points_for=0, avg_points_against=20)
        team = make_aggregate("Blank", avg_total_yards=0, avg_points_for=10, avg_points_against=20)

        assert efficiency_rating(team, league) == pytest.approx((0 * 0.35 + 1 * 0.35 + 10 * 0.30) * 1000)


class TestMatchupAdvantage:
    """Tests for the rush offense vs pass defense matchup."""

    def test_rank_difference_weighted(self, rankings):
        from nfl_forecast.algorithm.efficiency import matchup_advantage

        assert matchup_advantage("Home", "Away", rankings) == pytest.approx((25 - 5) * 0.15)
        assert matchup_advantage("Away", "Home", rankings) == pytest.approx((10 - 20) * 0.15)

    def test_best_rush_vs_worst_pass_defense(self):
        """#1 rush offense against #32 pass defense is the largest edge."""
        from nfl_forecast.algorithm.efficiency import matchup_advantage
        from nfl_forecast.data.models import Rankings

        rankings = Rankings(rush_offense={"A": 1}, pass_defense={"B": 32})

        assert matchup_advantage("A", "B", rankings) == pytest.approx(31 * 0.15)

    def test_unranked_teams_default_to_median(self):
        from nfl_forecast.algorithm.efficiency import matchup_advantage
        from nfl_forecast.data.models import Rankings

        assert matchup_advantage("A", "B", Rankings()) == 0
        assert matchup_advantage("A", "B", Rankings(), default_rank=10) == 0
        assert matchup_advantage("A", "B", Rankings(pass_defense={"B": 26})) == pytest.approx(1.5)


class TestSituationalAdjustment:
    """Tests for third-down and red-zone adjustments."""

    def test_differences_weighted(self, home, away):
        from nfl_forecast.algorithm.efficiency import situational_adjustment

        assert situational_adjustment(home, away) == pytest.approx(10 * 0.05 + 10 * 0.03)
        assert situational_adjustment(away, home) == pytest.approx(-0.8)

    def test_missing_percentages_use_defaults(self, home):
        """A team without efficiency stats is treated as 40% / 50%."""
        from nfl_forecast.algorithm.efficiency import situational_adjustment

        unknown = make_aggregate("Unknown")

        assert situational_adjustment(home, unknown) == pytest.approx(5 * 0.05 + 10 * 0.03)


class TestPredictGame:
    """Tests for efficiency score projections."""

    def test_projection(self, home, away, league, rankings):
        """
        Home: 23 + 2 - 0.6 + 2.5 + 3.0 + 0.8 = 30.7
        Away: 23 - 2 + 0.9 - 1.5 - 0.8 = 19.6
        """
        from nfl_forecast.algorithm.efficiency import predict_game

        prediction = predict_game(home, away, league, rankings)

        assert prediction.predicted_score == (31, 20)
        assert prediction.predicted_winner == "Home"
        assert prediction.score_difference == 11
        assert prediction.confidence == "high"
        assert prediction.home_matchup == pytest.approx(3.0)
        assert prediction.away_situational == pytest.approx(-0.8)

    def test_teams_without_games_are_league_average(self, league):
        """Only home field separates two teams that have not played."""
        from nfl_forecast.algorithm.efficiency import predict_game

        prediction = predict_game(make_aggregate("H", games=0), make_aggregate("A", games=0), league)

        assert prediction.predicted_score == (26, 23)
        assert prediction.confidence == "low"
        assert prediction.home_efficiency == 1500

    def test_medium_confidence(self, league):
        from nfl_forecast.algorithm.efficiency import predict_game

        strong = make_aggregate("H", avg_total_yards=350, avg_points_for=29, avg_points_against=23)
        average = make_aggregate("A", avg_total_yards=350, avg_points_for=23, avg_points_against=23)

        # Home: 23 + 3 + 2.5 = 28.5 -> 29, away 23
        prediction = predict_game(strong, average, league)

        assert prediction.predicted_score == (29, 23)
        assert prediction.confidence == "medium"

    def test_scores_floored_at_zero(self, league):
        from nfl_forecast.algorithm.efficiency import predict_game

        hopeless = make_aggregate("A", avg_total_yards=100, avg_points_for=0, avg_points_against=40)
        # Away: 23 - 11.5 - 0.3 * (100 - 23) < 0
        wall = make_aggregate("H", avg_total_yards=400, avg_points_for=40, avg_points_against=100)

        prediction = predict_game(wall, hopeless, league)

        assert prediction.predicted_score[1] == 0

    def test_unparsed_yardage_still_predicts(self, make_game, make_stats):
        """A box score whose yardage never parsed leaves a zero league average, not an error."""
        from nfl_forecast.algorithm.aggregation import aggregate_stats, calculate_league_averages
        from nfl_forecast.algorithm.efficiency import predict_game
        from nfl_forecast.algorithm.ranking import calculate_rankings

        game = make_game(
            "1", "Kansas City Chiefs", "Buffalo Bills", 24, 17,
            home_stats=make_stats(total_yards="N/A"),
            away_stats=make_stats(total_yards="N/A"),
        )
        team_stats = aggregate_stats([game])
        league = calculate_league_averages(team_stats)

        assert league.avg_total_yards == 0.0

        prediction = predict_game(
            team_stats["Kansas City Chiefs"],
            team_stats["Buffalo Bills"],
            league,
            calculate_rankings(team_stats),
        )

        assert prediction is not None
        assert prediction.predicted_winner == "Kansas City Chiefs"

    @pytest.mark.parametrize("missing", ["home", "away", "league"])
    def test_missing_input_returns_none(self, home, away, league, missing):
        from nfl_forecast.algorithm.efficiency import predict_game

        inputs = {"home": home, "away": away, "league": league}
        inputs[missing] = None

        assert predict_game(inputs["home"], inputs["away"], inputs["league"]) is None
