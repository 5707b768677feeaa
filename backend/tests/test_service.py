import random

import pytest

from conftest import chat
from wordguess.game import service
from wordguess.game.errors import InvalidInput, InvalidState


def names(events):
    return [e.name for e in events]


def payload(events, name):
    return next(e.payload for e in events if e.name == name)


def test_set_word_starts_round(game):
    events = service.set_word(game, 'Pizza', now=0)
    assert events[0].payload == {'status': 'started', 'secretLen': 5, 'maskedWord': '_____', 'timeLeftMs': 20_000}
    assert game.reading
    assert game.secret_norm == 'pizza'


def test_set_word_rejects_blank(game):
    with pytest.raises(InvalidInput):
        service.set_word(game, ' ?! ', now=0)
    assert not game.reading


def test_reset_returns_to_idle(game):
    service.set_word(game, 'pizza', now=0)
    service.handle_chat(game, chat('alice', 'pizza', 1_000))
    events = service.reset_round(game)
    assert events[0].payload == {'status': 'reset', 'maskedWord': '', 'timeLeftMs': 0}
    assert (game.secret_raw, game.revealed, game.winner, game.reading) == ('', [], None, False)
    assert service.snapshot(game, now=2_000)['timeLeftMs'] == 0


def test_reading_toggle(game):
    with pytest.raises(InvalidState):
        service.start_reading(game)
    service.set_word(game, 'pizza', now=0)
    service.stop_reading(game)
    events = service.handle_chat(game, chat('alice', 'pizza', 1_000))
    assert payload(events, 'chat')['isCorrect'] is False
    service.start_reading(game)
    events = service.handle_chat(game, chat('alice', 'pizza', 2_000))
    assert payload(events, 'chat')['isCorrect'] is True


def test_rate_limit_drops_fast_repeats(game):
    service.set_word(game, 'pizza', now=0)
    assert names(service.handle_chat(game, chat('alice', 'hi', 1_000))) == ['chat']
    assert service.handle_chat(game, chat('alice', 'pizza', 1_500)) == []
    assert game.winner is None
    assert names(service.handle_chat(game, chat('alice', 'hello', 1_800))) == ['chat']
    # other viewers are unaffected
    assert names(service.handle_chat(game, chat('bob', 'hey', 1_801))) == ['chat']


def test_correct_guess_declares_winner(game):
    service.set_word(game, 'Pizza', now=0)
    events = service.handle_chat(game, chat('alice', 'PIZZA!', 1_000))

    assert names(events) == ['chat', 'mask', 'winner', 'userUpdate', 'leaderboard']
    echo = payload(events, 'chat')
    assert echo['isCorrect'] is True
    assert echo['tier'] == 'none'
    assert payload(events, 'mask') == {'maskedWord': 'Pizza'}
    assert payload(events, 'winner')['highlightMs'] == 60_000
    assert payload(events, 'userUpdate') == {
        'userId': 'alice', 'nickname': 'Alice', 'wins': 1, 'tier': 'red', 'tierChanged': True,
    }
    assert payload(events, 'leaderboard')['entries'][0]['userId'] == 'alice'
    assert game.winner.user_id == 'alice'
    assert all(game.revealed)


def test_highlight_window_suppresses_judging(game):
    service.set_word(game, 'pizza', now=0)
    service.handle_chat(game, chat('alice', 'pizza', 1_000))
    events = service.handle_chat(game, chat('bob', 'pizza', 2_000))
    assert names(events) == ['chat']
    assert payload(events, 'chat')['isCorrect'] is False
    assert game.winner.user_id == 'alice'

    events = service.handle_chat(game, chat('bob', 'pizza', 61_000))
    assert payload(events, 'chat')['isCorrect'] is True


def test_new_word_clears_winner(game):
    service.set_word(game, 'pizza', now=0)
    service.handle_chat(game, chat('alice', 'pizza', 1_000))
    service.set_word(game, 'taco', now=2_000)
    assert game.winner is None
    events = service.handle_chat(game, chat('bob', 'taco', 3_000))
    assert payload(events, 'chat')['isCorrect'] is True


def test_wrong_guess_in_classic_mode_reveals_nothing(game):
    service.set_word(game, 'cat', now=0)
    events = service.handle_chat(game, chat('alice', 'cot', 1_000))
    assert names(events) == ['chat']
    assert game.revealed == [False, False, False]


def test_rapid_mode_locks_matching_positions(game):
    service.set_mode(game, 'rapid')
    service.set_word(game, 'cat', now=0)
    events = service.handle_chat(game, chat('alice', 'cot', 1_000))
    assert names(events) == ['mask', 'chat']
    assert game.revealed == [True, False, True]
    assert payload(events, 'mask') == {'maskedWord': 'c_t'}


def test_rapid_mode_maps_through_punctuation(game):
    service.set_mode(game, 'rapid')
    service.set_word(game, 'c-at', now=0)
    service.handle_chat(game, chat('alice', 'cot', 1_000))
    assert game.revealed == [True, False, False, True]


def test_rapid_mode_win_reveals_everything(game):
    service.set_mode(game, 'rapid')
    service.set_word(game, 'cat', now=0)
    service.handle_chat(game, chat('alice', 'cot', 1_000))
    events = service.handle_chat(game, chat('bob', 'cat', 1_100))
    assert payload(events, 'mask') == {'maskedWord': 'cat'}


def test_unknown_mode_rejected(game):
    with pytest.raises(InvalidInput):
        service.set_mode(game, 'turbo')
    assert game.mode == 'classic'


def test_chat_votes_count_alongside_guesses(game):
    service.set_mode(game, 'rapid')
    service.set_word(game, 'rabid', now=0)
    service.start_poll(game, 'Mode?', ['classic', 'rapid'], 30_000, now=0)

    events = service.handle_chat(game, chat('alice', 'Rapid!', 1_000))
    assert names(events) == ['pollUpdate', 'mask', 'chat']
    assert payload(events, 'pollUpdate') == {'tallies': {'classic': 0, 'rapid': 1}}

    events = service.handle_chat(game, chat('alice', 'classic', 2_000))
    assert 'pollUpdate' not in names(events)
    assert game.poll.tallies == {'classic': 0, 'rapid': 1}


def _vote(game, tallies):
    ts = 1_000
    for option, count in tallies.items():
        for i in range(count):
            service.handle_chat(game, chat(f'{option}-{i}', option, ts))
            ts += 1


def test_mode_poll_with_clear_winner_switches_mode(game):
    service.set_mode(game, 'rapid')
    service.start_poll(game, 'Mode?', ['classic', 'rapid'], 30_000, now=0)
    _vote(game, {'classic': 5, 'rapid': 2})
    events = service.stop_poll(game)
    assert names(events) == ['pollEnd', 'mode']
    assert payload(events, 'pollEnd')['winner'] == 'classic'
    assert game.mode == 'classic'


def test_mode_poll_tie_keeps_current_mode(game):
    service.set_mode(game, 'rapid')
    service.start_poll(game, 'Mode?', ['classic', 'rapid'], 30_000, now=0)
    _vote(game, {'classic': 3, 'rapid': 3})
    events = service.stop_poll(game)
    end = payload(events, 'pollEnd')
    assert end['tie'] is True
    assert end['winner'] == 'classic'
    assert end['mode'] == 'rapid'
    assert names(events) == ['pollEnd']


def test_stop_poll_twice_emits_once(game):
    service.start_poll(game, 'Snack?', ['pizza', 'taco'], 30_000, now=0)
    assert names(service.stop_poll(game)) == ['pollEnd']
    assert service.stop_poll(game) == []


def test_scheduled_close_for_old_poll_is_ignored(game):
    first_id, _ = service.start_poll(game, 'One', ['a', 'b'], 30_000, now=0)
    service.stop_poll(game)
    second_id, _ = service.start_poll(game, 'Two', ['c', 'd'], 30_000, now=0)
    assert service.stop_poll(game, first_id) == []
    assert game.poll.id == second_id


def test_reveal_letters_and_word(game):
    with pytest.raises(InvalidState):
        service.reveal_word(game)
    service.set_word(game, 'pizza', now=0)
    with pytest.raises(InvalidInput):
        service.reveal_letters(game, '')
    assert service.reveal_letters(game, '2;4;x;99')[0].payload == {'maskedWord': '_i_z_'}
    assert service.reveal_word(game)[0].payload == {'maskedWord': 'pizza'}


def test_timer_adjustments(game):
    with pytest.raises(InvalidState):
        service.add_time(game, 1_000, now=0)
    service.set_word(game, 'pizza', now=0)
    assert service.add_time(game, 10_000, now=5_000)[0].payload['timeLeftMs'] == 25_000
    assert service.update_timer(game, 30_000, now=5_000)[0].payload['timeLeftMs'] == 30_000


def test_boosts(game):
    with pytest.raises(InvalidState):
        service.boost(game, 'add-time', now=0)
    service.set_word(game, 'pizza pie', now=0)

    events = service.boost(game, 'add-time', now=0)
    assert payload(events, 'boost') == {'type': 'add-time', 'ms': 10_000}
    assert payload(events, 'round')['timeLeftMs'] == 30_000

    events = service.boost(game, 'prompt', 5_000, 'Type fast!', now=0)
    assert payload(events, 'boost') == {'type': 'prompt', 'ms': 5_000, 'text': 'Type fast!'}

    events = service.boost(game, 'reveal-letter', 2, now=0, rng=random.Random(7))
    assert payload(events, 'boost') == {'type': 'reveal-letter', 'count': 2}
    assert sum(game.revealed) == 2
    assert not game.revealed[5]

    events = service.boost(game, 'reveal-word', now=0)
    assert payload(events, 'mask') == {'maskedWord': 'pizza pie'}

    events = service.boost(game, 'reveal-letter', now=0)
    assert payload(events, 'boost')['count'] == 0

    with pytest.raises(InvalidInput):
        service.boost(game, 'confetti', now=0)


def test_winner_expiry_announced_once(game):
    service.set_word(game, 'pizza', now=0)
    service.handle_chat(game, chat('alice', 'pizza', 1_000))
    assert service.expire_winner(game, now=30_000) == []
    assert names(service.expire_winner(game, now=61_000)) == ['winnerExpired']
    assert service.expire_winner(game, now=62_000) == []


def test_reset_viewers_clears_leaderboard(game):
    service.set_word(game, 'pizza', now=0)
    service.handle_chat(game, chat('alice', 'pizza', 1_000))
    events = service.reset_viewers(game)
    assert events[0].payload == {'entries': []}


def test_snapshot_shape(game):
    service.set_word(game, 'pizza', now=0)
    service.start_poll(game, 'Mode?', ['classic', 'rapid'], 30_000, now=0)
    service.handle_chat(game, chat('alice', 'pizza', 1_000))

    snap = service.snapshot(game, now=2_000)
    assert snap['secretSet'] is True
    assert snap['maskedWord'] == 'pizza'
    assert snap['timeLeftMs'] == 18_000
    assert snap['mode'] == 'classic'
    assert snap['winner']['nickname'] == 'Alice'
    assert snap['winner']['highlightActive'] is True
    assert snap['poll']['options'] == ['classic', 'rapid']
    assert snap['leaderboard'][0]['wins'] == 1
    assert service.snapshot(game, now=70_000)['winner']['highlightActive'] is False


def test_pizza_round_end_to_end(game):
    service.set_word(game, 'pizza', now=0)
    snap = service.snapshot(game, now=0)
    assert snap['isRunning'] and snap['maskedWord'] == '_____' and snap['timeLeftMs'] == 20_000

    events = service.handle_chat(game, chat('alice', 'pizza', 3_000))
    assert payload(events, 'chat')['isCorrect'] is True
    assert payload(events, 'winner')['nickname'] == 'Alice'
    assert game.viewers.get('alice').wins_total == 1
    assert game.viewers.get('alice').tier == 'red'

    events = service.handle_chat(game, chat('bob', 'pizza', 4_000))
    assert payload(events, 'chat')['isCorrect'] is False
