import pytest

from sketchbluff.game.errors import SessionNotFound
from sketchbluff.game.registry import CODE_ALPHABET, SessionRegistry, generate_code
from sketchbluff.game.session import Game


def test_generated_codes_are_short_and_typeable():
    code = generate_code()
    assert len(code) == 6
    assert all(ch in CODE_ALPHABET for ch in code)


def test_create_returns_code_that_routes_to_one_session(timers):
    registry = SessionRegistry(game_factory=lambda code: Game(code, timer_factory=timers))
    code = registry.create()
    game = registry.get(code)
    assert game is not None
    assert game.code == code
    assert registry.require(code) is game
    assert code in registry
    assert len(registry) == 1


def test_codes_are_unique_among_live_sessions(monkeypatch):
    codes = iter(['AAAAAA', 'AAAAAA', 'BBBBBB'])
    monkeypatch.setattr('sketchbluff.game.registry.generate_code', lambda length=6: next(codes))
    registry = SessionRegistry()
    assert registry.create() == 'AAAAAA'
    assert registry.create() == 'BBBBBB'


def test_unknown_code_is_not_found():
    registry = SessionRegistry()
    assert registry.get('NOPE42') is None
    with pytest.raises(SessionNotFound):
        registry.require('NOPE42')


def test_removing_last_player_destroys_session(timers):
    registry = SessionRegistry(game_factory=lambda code: Game(code, timer_factory=timers))
    code = registry.create()
    game = registry.get(code)
    game.add_player('p1', 'Alice', 'Red')
    game.add_player('p2', 'Bob', 'Blue')
    game.start('p1')

    game.remove_player('p1')
    assert registry.destroy_if_empty(code) is False
    assert registry.get(code) is game

    game.remove_player('p2')
    assert registry.destroy_if_empty(code) is True
    assert registry.get(code) is None
    assert timers.active == []


def test_destroy_if_empty_on_unknown_code():
    assert SessionRegistry().destroy_if_empty('GONE00') is False


def test_sessions_nobody_joins_expire_after_ttl(timers):
    registry = SessionRegistry(game_factory=lambda code: Game(code, timer_factory=timers), empty_ttl_sec=10)
    code = registry.create()
    created = registry.get(code).empty_since_ms

    assert registry.reap_empty(now=created + 9_000) == []
    assert code in registry
    assert registry.reap_empty(now=created + 10_000) == [code]
    assert registry.get(code) is None


def test_occupied_sessions_survive_reaping(timers):
    registry = SessionRegistry(game_factory=lambda code: Game(code, timer_factory=timers), empty_ttl_sec=10)
    code = registry.create()
    game = registry.get(code)
    game.add_player('p1', 'Alice', 'Red')
    assert game.empty_since_ms is None

    assert registry.reap_empty(now=10**15) == []
    assert registry.get(code) is game


def test_create_reaps_expired_empty_sessions(timers):
    registry = SessionRegistry(game_factory=lambda code: Game(code, timer_factory=timers), empty_ttl_sec=0)
    first = registry.create()
    second = registry.create()
    assert first not in registry
    assert second in registry
    assert len(registry) == 1


def test_join_after_session_closed_is_rejected(timers):
    registry = SessionRegistry(game_factory=lambda code: Game(code, timer_factory=timers))
    code = registry.create()
    game = registry.get(code)
    game.add_player('p1', 'Alice', 'Red')
    game.remove_player('p1')
    assert registry.destroy_if_empty(code) is True

    # A joiner that looked the session up before it was destroyed.
    with pytest.raises(SessionNotFound):
        game.add_player('p2', 'Bob', 'Blue')
    assert game.is_empty
    assert game.closed
