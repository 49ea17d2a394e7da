import re

import pytest

from buzzer.errors import ErrorCode, GameError
from buzzer.services import BuzzerServices
from buzzer.services.games import GameSettings
from buzzer.utils.join_codes import allocate_join_code

JOIN_CODE_RE = re.compile(r'[A-Z2-9]{6}')


def _code_of(call):
    with pytest.raises(GameError) as excinfo:
        call()
    return excinfo.value.code


def test_create_session_gives_distinct_codes(services, gateway):
    first = services.sessions.create_session('gmsecret', 'gm-1')
    second = services.sessions.create_session('gmsecret', 'gm-1')

    assert JOIN_CODE_RE.fullmatch(first.join_code)
    assert first.join_code != second.join_code
    assert first.gm_password_hash != 'gmsecret'
    assert 'gm-1' in gateway.rooms[first.join_code]
    created = gateway.named('session:created')[0]
    assert created['to'] == 'gm-1'
    assert created['payload']['joinCode'] == first.join_code


@pytest.mark.parametrize('password', ['abc', 'x' * 21, '', None])
def test_create_session_rejects_bad_password(services, password):
    assert _code_of(lambda: services.sessions.create_session(password, 'gm-1')) is ErrorCode.INVALID_GM_PASSWORD
    assert services.store.session_count() == 0


def test_legacy_single_password_mode(store, gateway, hasher):
    legacy = BuzzerServices.build(store, gateway, hasher, GameSettings(legacy_gm_password='letmein'))
    assert _code_of(lambda: legacy.sessions.create_session('gmsecret', 'gm-1')) is ErrorCode.INVALID_GM_PASSWORD
    assert legacy.sessions.create_session('letmein', 'gm-1').join_code


def test_code_allocation_exhaustion_is_internal_error(services, monkeypatch):
    services.store.create_session('AAAAAA', 'hash')

    def always_taken(is_taken, max_attempts):
        return allocate_join_code(is_taken, max_attempts, generate=lambda: 'AAAAAA')

    monkeypatch.setattr('buzzer.services.games.sessions.allocate_join_code', always_taken)
    assert _code_of(lambda: services.sessions.create_session('gmsecret', 'gm-1')) is ErrorCode.INTERNAL_ERROR
    assert services.store.session_count() == 1


def test_get_active_sessions_by_password(services):
    mine = services.sessions.create_session('gmsecret', 'gm-1')
    services.sessions.create_session('othersecret', 'gm-2')

    found = services.sessions.get_active_sessions('gmsecret')

    assert [meta['joinCode'] for meta in found] == [mine.join_code]
    assert services.sessions.get_active_sessions('nomatch') == []
    assert _code_of(lambda: services.sessions.get_active_sessions('')) is ErrorCode.MISSING_REQUIRED_FIELD


def test_reconnect_to_session(services, session_code, gateway):
    session = services.sessions.reconnect_to_session(session_code.lower(), 'gmsecret', 'gm-new')
    assert session.join_code == session_code
    assert 'gm-new' in gateway.rooms[session_code]
    assert gateway.named('session:gmReconnected')[0]['exclude'] == 'gm-new'


@pytest.mark.parametrize('code, password, expected', [
    ('NOPE', 'gmsecret', ErrorCode.INVALID_JOIN_CODE),
    ('ZZZZZZ', 'gmsecret', ErrorCode.SESSION_NOT_FOUND),
    (None, 'wrongpass', ErrorCode.SESSION_PASSWORD_MISMATCH),
])
def test_reconnect_rejections(services, session_code, code, password, expected):
    code = code or session_code
    assert _code_of(lambda: services.sessions.reconnect_to_session(code, password, 'gm-new')) is expected


def test_end_session_deactivates_and_blocks_further_play(services, session_code, gateway):
    services.sessions.end_session(session_code, 'gm-sid')

    session = services.store.get_session(session_code)
    assert session is not None and not session.is_active
    assert gateway.named('session:ended')[0]['exclude'] == 'gm-sid'
    assert _code_of(lambda: services.game.start_question(session_code)) is ErrorCode.SESSION_INACTIVE
    assert _code_of(
        lambda: services.sessions.reconnect_to_session(session_code, 'gmsecret', 'gm-new')
    ) is ErrorCode.SESSION_INACTIVE
    assert services.store.cleanup_inactive_sessions() == [session_code]


def test_close_session_removes_it(services, session_code, gateway):
    services.roster.join(session_code, 'Amy', 'pass1234', 'sid-amy')
    services.sessions.close_session(session_code, 'gm-sid')

    assert services.store.get_session(session_code) is None
    assert len(gateway.named('session:closed')) == 1
    assert services.store.release_connection('sid-amy') == []


def test_multibyte_gm_password(services):
    password = '\U0001F600' * 19
    session = services.sessions.create_session(password, 'gm-1')

    found = services.sessions.get_active_sessions(password)
    assert [meta['joinCode'] for meta in found] == [session.join_code]
    assert services.sessions.reconnect_to_session(session.join_code, password, 'gm-2') is session
