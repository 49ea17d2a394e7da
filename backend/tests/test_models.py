import pytest

from buzzer.errors import ErrorCode, GameError
from buzzer.models import BuzzerSound, GameState, Player, Question, Session


def _session():
    return Session(join_code='ABC234', gm_password_hash='hash')


def test_first_appended_press_wins_even_with_same_timestamp():
    question = Question(question_number=1)
    first = question.add_press('p1', 'Amy', timestamp=1000)
    second = question.add_press('p2', 'Bob', timestamp=1000)
    assert first.is_first and not second.is_first
    assert question.first_buzzer_id == 'p1'
    assert [p.is_first for p in question.buzzer_presses] == [True, False]
    assert question.has_buzzed('p2')
    assert not question.has_buzzed('p3')


def test_press_keeps_name_captured_at_press_time():
    question = Question(question_number=1)
    press = question.add_press('p1', 'Amy')
    assert press.to_dict()['playerName'] == 'Amy'


def test_player_defaults_and_public_dict_hides_secrets():
    player = Player.create('ABC234', 'Amy', 'secret-hash', 'sid-1')
    assert player.score == 0
    assert player.buzzer_sound is BuzzerSound.PARTY_HORN
    assert player.is_connected
    data = player.to_dict()
    assert 'password_hash' not in data and 'passwordHash' not in data
    assert 'connectionId' not in data
    assert data['buzzerSound'] == 'party_horn'


def test_player_disconnect_and_reconnect():
    player = Player.create('ABC234', 'Amy', 'hash', 'sid-1')
    player.disconnect()
    assert player.connection_id is None and not player.is_connected
    player.reconnect('sid-2')
    assert player.connection_id == 'sid-2' and player.is_connected


def test_points_accumulate_in_any_order():
    a = Player.create('ABC234', 'Amy', 'hash', 'sid')
    b = Player.create('ABC234', 'Bob', 'hash', 'sid')
    for points in (10, -5, 3):
        a.add_points(points)
    for points in (3, 10, -5):
        b.add_points(points)
    assert a.score == b.score == 8


def test_nickname_taken_is_case_insensitive():
    session = _session()
    session.add_player(Player.create('ABC234', 'Alex', 'hash', 'sid'))
    assert session.is_nickname_taken('alex')
    assert session.is_nickname_taken('ALEX')
    assert not session.is_nickname_taken('Alexa')


def test_capacity():
    session = _session()
    for i in range(3):
        session.add_player(Player.create('ABC234', f'P{i}', 'hash', 'sid'))
    assert session.has_space_for_player(4)
    assert not session.has_space_for_player(3)


def test_question_numbers_keep_increasing_across_skips():
    session = _session()
    assert session.begin_question().question_number == 1
    assert session.clear_question() == 1
    assert session.current_question is None
    assert session.last_question_number == 1
    assert session.begin_question().question_number == 2


def test_begin_question_clears_buzz_timestamps():
    session = _session()
    player = Player.create('ABC234', 'Amy', 'hash', 'sid')
    player.last_buzz_timestamp = 123
    session.add_player(player)
    session.begin_question()
    assert player.last_buzz_timestamp is None


def test_illegal_transition_is_rejected_without_change():
    session = _session()
    with pytest.raises(GameError) as excinfo:
        session.open_scoring()
    assert excinfo.value.code is ErrorCode.INVALID_STATE_TRANSITION
    assert session.game_state is GameState.WAITING


def test_new_game_resets_scores_but_not_numbering():
    session = _session()
    player = Player.create('ABC234', 'Amy', 'hash', 'sid')
    player.score = 40
    session.add_player(player)
    session.begin_question()
    session.game_state = GameState.ENDED
    session.current_question = None
    session.reset_for_new_game()
    assert session.game_state is GameState.WAITING
    assert player.score == 0
    assert session.begin_question().question_number == 2


def test_metadata_excludes_secrets():
    session = _session()
    session.add_player(Player.create('ABC234', 'Amy', 'hash', 'sid'))
    offline = Player.create('ABC234', 'Bob', 'hash', 'sid2')
    offline.disconnect()
    session.add_player(offline)
    meta = session.to_metadata()
    assert meta['playerCount'] == 2
    assert meta['connectedPlayerCount'] == 1
    assert meta['questionNumber'] == 0
    assert 'gmPasswordHash' not in meta and 'gm_password_hash' not in meta
