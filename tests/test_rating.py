import pytest

from pitchside.lineup import create_player, create_session
from pitchside.models import Game, GameStatus, Goal, PlayerForm, PlayerTier, Session, SessionConfig
from pitchside.rating import (
    apply_inactivity_penalty,
    calculate_rating_update,
    form_for_delta,
    k_factor,
    round_half_up,
    team_points,
    tier_for_rating,
)
from pitchside.statistics import calculate_all_stats


def _session() -> Session:
    players = [create_player(name) for name in ("ana", "bo", "cy", "dee", "eli", "fay")]
    session = create_session(SessionConfig(num_teams=3, players_per_team=2), players)
    for idx, player in enumerate(players):
        session.teams[idx // 2].player_ids.append(player.player_id)
    return session


def _game(session: Session, left: int, right: int, goals: list[tuple[int, str]]) -> Game:
    """Append a finished game; each goal is (team index, scorer nickname) in order."""
    game = Game(
        team1_id=session.teams[left].team_id,
        team2_id=session.teams[right].team_id,
        game_number=len(session.games) + 1,
    )
    by_name = {p.nickname: p.player_id for p in session.player_pool}
    for second, (team_idx, scorer) in enumerate(goals):
        team_id = session.teams[team_idx].team_id
        game.goals.append(Goal(game_id=game.game_id, team_id=team_id, scorer_id=by_name[scorer], timestamp_seconds=second))
        if team_id == game.team1_id:
            game.team1_score += 1
        else:
            game.team2_score += 1
    game.status = GameStatus.FINISHED
    game.settle_result()
    session.games.append(game)
    return game


def _player(session: Session, nickname: str):
    return next(p for p in session.player_pool if p.nickname == nickname)


def test_tier_bands() -> None:
    assert tier_for_rating(87) == PlayerTier.LEGEND
    assert tier_for_rating(86) == PlayerTier.ELITE
    assert tier_for_rating(79) == PlayerTier.ELITE
    assert tier_for_rating(78) == PlayerTier.STRONG
    assert tier_for_rating(73) == PlayerTier.STRONG
    assert tier_for_rating(65) == PlayerTier.AVERAGE
    assert tier_for_rating(64) == PlayerTier.DEVELOPING


def test_k_factor_and_form_brackets() -> None:
    assert k_factor(0) == 0.25
    assert k_factor(3) == 0.10
    assert k_factor(15) == 0.07
    assert k_factor(30) == 0.04
    assert form_for_delta(0.5) == PlayerForm.HOT_STREAK
    assert form_for_delta(-0.5) == PlayerForm.COLD_STREAK
    assert form_for_delta(0.49) == PlayerForm.STABLE
    assert round_half_up(70.5) == 71
    assert round_half_up(-0.5) == 0


def test_comeback_outranks_dominant_win() -> None:
    session = _session()
    red = session.teams[0].team_id
    game = _game(session, 0, 1, [(1, "cy"), (0, "ana"), (0, "ana"), (0, "bo")])
    assert team_points(game, red) == pytest.approx(1.5)
    dominant = _game(session, 0, 1, [(0, "ana"), (0, "ana")])
    assert team_points(dominant, red) == pytest.approx(1.3)
    assert team_points(dominant, session.teams[1].team_id) == pytest.approx(-0.8)


def test_new_player_moves_quarter_of_the_gap() -> None:
    session = _session()
    _game(session, 0, 1, [(0, "ana")])  # win 1-0, ana scores, clean sheet
    _game(session, 0, 2, [(0, "bo"), (2, "eli")])  # 1-1 draw
    ana = _player(session, "ana")
    stats = calculate_all_stats(session).for_player(ana.player_id)

    # 6.0 + 0.7 team + 1.0 individual + 0.1 badge = 7.8 -> performance 78, ten above 68.
    delta, breakdown = calculate_rating_update(ana, stats, session, ["first_blood"])
    assert delta == pytest.approx(2.5)
    assert breakdown.final_change == pytest.approx(2.5)
    assert breakdown.team_performance == pytest.approx(0.7)
    assert breakdown.individual_performance == pytest.approx(1.0)
    assert breakdown.badge_bonus == pytest.approx(0.1)
    assert breakdown.badges_earned == ["first_blood"]
    assert ana.rating == 68


def test_delta_capped_for_veterans() -> None:
    session = _session()
    for _ in range(3):
        _game(session, 0, 1, [(0, "ana"), (0, "ana"), (0, "ana")])
    ana = _player(session, "ana")
    ana.total_sessions_played = 10
    stats = calculate_all_stats(session).for_player(ana.player_id)
    delta, breakdown = calculate_rating_update(ana, stats, session)
    assert delta == pytest.approx(2.0)
    assert breakdown.new_rating == 70


def test_rating_never_drops_below_initial() -> None:
    session = _session()
    for _ in range(3):
        _game(session, 1, 0, [(1, "cy"), (1, "cy"), (1, "dee")])
    ana = _player(session, "ana")
    stats = calculate_all_stats(session).for_player(ana.player_id)
    delta, breakdown = calculate_rating_update(ana, stats, session)
    assert delta == pytest.approx(-3.0)
    assert breakdown.new_rating == ana.initial_rating


def test_zero_games_returns_zero_breakdown() -> None:
    session = _session()
    _game(session, 1, 2, [(1, "cy")])
    ana = _player(session, "ana")
    stats = calculate_all_stats(session).for_player(ana.player_id)
    delta, breakdown = calculate_rating_update(ana, stats, session)
    assert delta == 0.0
    assert breakdown.new_rating == ana.rating
    assert breakdown.final_change == 0.0


def test_inactivity_penalty_floors_at_initial() -> None:
    player = create_player("gus")
    player.rating = 70
    player.initial_rating = 68
    breakdown = apply_inactivity_penalty(player)
    assert player.rating == 69
    assert breakdown.is_penalty is True
    assert breakdown.previous_rating == 70
    assert breakdown.new_rating == 69
    assert player.last_rating_change is breakdown

    player.rating = 68
    apply_inactivity_penalty(player)
    assert player.rating == 68
    assert player.tier == PlayerTier.AVERAGE
