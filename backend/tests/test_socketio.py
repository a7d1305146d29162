def _names(received):
    return [pkt['name'] for pkt in received]


def _first(received, name):
    for pkt in received:
        if pkt['name'] == name:
            return pkt['args'][0] if pkt['args'] else None
    raise AssertionError(f'{name} not received; got {_names(received)}')


def _start_game(sio_factory, room_id='r1', size='3x3', host_plays_x=True):
    host = sio_factory()
    guest = sio_factory()
    host.emit('createGame', {'roomId': room_id, 'boardSizeLabel': size, 'hostPlaysX': host_plays_x})
    guest.emit('joinGame', room_id)
    return host, guest


def test_create_game_acknowledges_host(sio_factory):
    host = sio_factory()
    assert host.is_connected('/')
    host.emit('createGame', {'roomId': 'r1', 'boardSizeLabel': '6x6', 'hostPlaysX': False})
    received = host.get_received('/')
    assert _first(received, 'assignSymbol') == {'symbol': 'O', 'isHost': True}
    assert _first(received, 'waitingForOpponent') == {'roomId': 'r1', 'boardSizeLabel': '6x6'}


def test_create_game_requires_room_id(sio_factory):
    host = sio_factory()
    host.emit('createGame', {'boardSizeLabel': '3x3'})
    assert 'roomId' in _first(host.get_received('/'), 'error')['message']


def test_join_starts_game_for_both(sio_factory, game_service):
    host, guest = _start_game(sio_factory)
    host_events = host.get_received('/')
    guest_events = guest.get_received('/')
    assert 'gameStart' in _names(host_events)
    assert _first(guest_events, 'assignSymbol') == {'symbol': 'O', 'isHost': False}
    state = _first(guest_events, 'gameStart')
    assert len(state['players']) == 2
    assert state['board'] == [None] * 9
    assert game_service.registry.get('r1') is not None


def test_join_unknown_and_full_rooms(sio_factory):
    host, guest = _start_game(sio_factory)
    third = sio_factory()
    third.emit('joinGame', {'roomId': 'missing'})
    assert 'not found' in _first(third.get_received('/'), 'gameNotFound')['message']
    host.get_received('/')
    third.emit('joinGame', 'r1')
    assert 'full' in _first(third.get_received('/'), 'gameFull')['message']
    assert host.get_received('/') == []


def test_top_row_win_broadcasts_board_then_game_over(sio_factory):
    host, guest = _start_game(sio_factory)
    for client, cell in [(host, 0), (guest, 3), (host, 1), (guest, 4), (host, 2)]:
        client.emit('makeMove', {'roomId': 'r1', 'cellIndex': cell})
    names = _names(guest.get_received('/'))
    assert names.count('updateBoard') == 5
    assert names[-2:] == ['updateBoard', 'gameOver']
    host_events = host.get_received('/')
    assert _first(host_events, 'gameOver') == {'winner': 'X', 'winningLine': [0, 1, 2]}


def test_legacy_payload_keys_are_accepted(sio_factory, game_service):
    host = sio_factory()
    guest = sio_factory()
    host.emit('createGame', {'gameId': 'old', 'gameSize': '6x6', 'hostStarts': True})
    guest.emit('joinGame', 'old')
    host.emit('makeMove', {'gameId': 'old', 'index': 7})
    room = game_service.registry.get('old')
    assert room.dimension == 6
    assert room.board[7] == 'X'


def test_out_of_turn_move_emits_nothing(sio_factory):
    host, guest = _start_game(sio_factory)
    host.get_received('/')
    guest.get_received('/')
    guest.emit('makeMove', {'roomId': 'r1', 'cellIndex': 0})
    assert host.get_received('/') == []
    assert guest.get_received('/') == []


def test_restart_negotiation(sio_factory):
    host, guest = _start_game(sio_factory)
    host.emit('makeMove', {'roomId': 'r1', 'cellIndex': 4})
    host.get_received('/')
    guest.get_received('/')

    host.emit('restartGame', 'r1')
    assert host.get_received('/') == []
    assert _names(guest.get_received('/')) == ['restartRequest']

    guest.emit('declineRestart', 'r1')
    assert _names(host.get_received('/')) == ['restartDeclined']

    host.emit('restartGame', 'r1')
    guest.get_received('/')
    guest.emit('restartGame', 'r1')
    state = _first(host.get_received('/'), 'gameRestarted')
    assert state['board'] == [None] * 9
    assert state['restartPending'] is False
    assert 'gameRestarted' in _names(guest.get_received('/'))


def test_settings_change_mid_game_is_advertised_only(sio_factory, game_service):
    host, guest = _start_game(sio_factory)
    host.emit('makeMove', {'roomId': 'r1', 'cellIndex': 0})
    guest.get_received('/')
    host.emit('changeGameSettings', {'roomId': 'r1', 'boardSizeLabel': '9x9',
                                     'hostPlaysX': True, 'applyImmediately': False})
    notice = _first(guest.get_received('/'), 'gameSettingsChanged')
    assert notice == {'boardSizeLabel': '9x9', 'hostPlaysX': True, 'dimension': 3}
    assert game_service.registry.get('r1').board[0] == 'X'


def test_settings_change_applied_immediately(sio_factory):
    host, guest = _start_game(sio_factory)
    guest.get_received('/')
    host.emit('changeGameSettings', {'roomId': 'r1', 'boardSizeLabel': '6x6',
                                     'hostPlaysX': False, 'applyImmediately': True})
    received = guest.get_received('/')
    assert _first(received, 'assignSymbol') == {'symbol': 'X', 'isHost': False}
    assert _first(received, 'gameRestarted')['dimension'] == 6


def test_chat_reaches_both_players(sio_factory):
    host, guest = _start_game(sio_factory)
    host.get_received('/')
    guest.get_received('/')
    guest.emit('chatMessage', {'roomId': 'r1', 'message': 'gg', 'senderLabel': 'Guest'})
    expected = {'message': 'gg', 'senderLabel': 'Guest'}
    assert _first(host.get_received('/'), 'receiveMessage') == expected
    assert _first(guest.get_received('/'), 'receiveMessage') == expected


def test_host_disconnect_ends_room(sio_factory, game_service):
    host, guest = _start_game(sio_factory)
    guest.get_received('/')
    host.disconnect(namespace='/')
    assert 'hostLeft' in _names(guest.get_received('/'))
    assert game_service.registry.get('r1') is None


def test_guest_disconnect_keeps_room(sio_factory, game_service):
    host, guest = _start_game(sio_factory)
    host.get_received('/')
    guest.disconnect(namespace='/')
    assert 'opponentLeft' in _names(host.get_received('/'))
    assert len(game_service.registry.get('r1').participants) == 1


def test_non_boolean_flags_fall_back_to_defaults(sio_factory, game_service):
    host = sio_factory()
    host.emit('createGame', {'roomId': 'r1', 'boardSizeLabel': '3x3', 'hostPlaysX': 'false'})
    assert _first(host.get_received('/'), 'assignSymbol') == {'symbol': 'X', 'isHost': True}
    guest = sio_factory()
    guest.emit('joinGame', 'r1')
    host.emit('makeMove', {'roomId': 'r1', 'cellIndex': 0})
    host.emit('changeGameSettings', {'roomId': 'r1', 'boardSizeLabel': '6x6',
                                     'hostPlaysX': 0, 'applyImmediately': 'yes'})
    room = game_service.registry.get('r1')
    assert room.host_plays_x is True
    assert room.dimension == 3
    assert room.board[0] == 'X'


def test_closed_room_topic_does_not_leak_into_recreated_room(sio_factory):
    old_host, old_guest = _start_game(sio_factory)
    old_host.disconnect(namespace='/')
    assert 'hostLeft' in _names(old_guest.get_received('/'))

    new_host, new_guest = _start_game(sio_factory)
    new_guest.emit('chatMessage', {'roomId': 'r1', 'message': 'hi', 'senderLabel': 'New'})
    assert 'receiveMessage' in _names(new_host.get_received('/'))
    assert old_guest.get_received('/') == []
