from pitchside.lineup import (
    assign_player,
    auto_balance,
    can_start,
    create_player,
    create_session,
    unassigned_players,
)
from pitchside.models import PlayerTier, SessionConfig


def test_new_player_floor_and_tier() -> None:
    rookie = create_player("  ana  ", start_rating=74)
    assert rookie.nickname == "ana"
    assert rookie.initial_rating == 74
    assert rookie.tier == PlayerTier.STRONG
    assert rookie.total_sessions_played == 0


def test_auto_balance_snakes_by_rating() -> None:
    players = [create_player(f"p{rating}", start_rating=rating) for rating in (80, 78, 76, 74, 72, 70)]
    session = create_session(SessionConfig(num_teams=3, players_per_team=2), players)
    auto_balance(session)
    by_id = {p.player_id: p.rating for p in players}
    assert [[by_id[pid] for pid in team.player_ids] for team in session.teams] == [[80, 70], [78, 72], [76, 74]]
    assert can_start(session)


def test_assign_toggles_and_blocks_start() -> None:
    players = [create_player(name) for name in ("ana", "bo", "cy", "dee")]
    session = create_session(SessionConfig(num_teams=2, players_per_team=2), players)
    red, blue = session.teams
    ana = players[0].player_id

    assert assign_player(session, ana, red.team_id)
    assert red.player_ids == [ana]
    assert assign_player(session, ana, blue.team_id)
    assert red.player_ids == [] and blue.player_ids == [ana]
    # Assigning to the current team clears the assignment.
    assert assign_player(session, ana, blue.team_id)
    assert blue.player_ids == []

    assert not assign_player(session, ana, "missing")
    assert not assign_player(session, "ghost", red.team_id)
    assert len(unassigned_players(session)) == 4
    assert not can_start(session)

    for idx, player in enumerate(players):
        assign_player(session, player.player_id, session.teams[idx % 2].team_id)
    assert unassigned_players(session) == []
    assert can_start(session)
