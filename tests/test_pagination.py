import pytest

from ingest.pagination import fetch_all
from ingest.session import Session
from ingest.transport import DecodeError


def _page(key, ids, total, offset=0):
    return {key: [{'id': i, 'name': f'p{i}'} for i in ids], 'total_count': total, 'offset': offset, 'limit': 100}


@pytest.fixture
def session(fake_transport):
    return Session.establish_by_key('https://redmine.example.com/', 'k', transport=fake_transport)


def test_accumulates_pages_in_order(session, fake_transport):
    fake_transport.queue(_page('projects', range(1, 101), 230))
    fake_transport.queue(_page('projects', range(101, 201), 230, offset=100))
    fake_transport.queue(_page('projects', range(201, 231), 230, offset=200))

    items = fetch_all(session, '/projects.json', 'projects', {'limit': '100'})

    assert [i['id'] for i in items] == list(range(1, 231))
    assert len(fake_transport.calls) == 3
    assert 'offset' not in fake_transport.calls[0]['params']
    assert fake_transport.calls[1]['params']['offset'] == '100'
    assert fake_transport.calls[2]['params']['offset'] == '200'
    assert all(c['url'] == 'https://redmine.example.com/projects.json' for c in fake_transport.calls)


def test_offset_is_items_accumulated_not_server_offset(session, fake_transport):
    # server returns short pages and a bogus offset; next offset follows what we actually received
    fake_transport.queue(_page('issues', [1, 2], 5, offset=0))
    fake_transport.queue(_page('issues', [3, 4], 5, offset=99))
    fake_transport.queue(_page('issues', [5], 5, offset=99))

    items = fetch_all(session, '/issues.json', 'issues')

    assert [i['id'] for i in items] == [1, 2, 3, 4, 5]
    assert [c['params'].get('offset') for c in fake_transport.calls] == [None, '2', '4']


def test_zero_total_makes_exactly_one_request(session, fake_transport):
    fake_transport.queue(_page('time_entries', [], 0))
    assert fetch_all(session, '/time_entries.json', 'time_entries') == []
    assert len(fake_transport.calls) == 1


def test_default_limit_and_caller_params_untouched(session, fake_transport):
    fake_transport.queue(_page('issues', [1], 2))
    fake_transport.queue(_page('issues', [2], 2, offset=1))
    params = {'watcher_id': 'me', 'offset': '40'}

    fetch_all(session, '/issues.json', 'issues', params)

    assert params == {'watcher_id': 'me', 'offset': '40'}
    first = fake_transport.calls[0]['params']
    assert first == {'watcher_id': 'me', 'limit': '100'}


def test_under_reported_total_stops(session, fake_transport):
    fake_transport.queue(_page('projects', [1, 2, 3], 2))
    items = fetch_all(session, '/projects.json', 'projects')
    assert len(items) == 3
    assert len(fake_transport.calls) == 1


def test_empty_page_before_total_raises(session, fake_transport):
    fake_transport.queue(_page('projects', [1], 5))
    fake_transport.queue(_page('projects', [], 5, offset=1))
    with pytest.raises(DecodeError):
        fetch_all(session, '/projects.json', 'projects')
    assert len(fake_transport.calls) == 2


@pytest.mark.parametrize('envelope', [
    {'projects': []},
    {'projects': [], 'total_count': -1},
    {'projects': [], 'total_count': '3'},
    {'projects': {}, 'total_count': 0},
    {'other': [], 'total_count': 0},
])
def test_envelope_shape_mismatch_raises(session, fake_transport, envelope):
    fake_transport.queue(envelope)
    with pytest.raises(DecodeError):
        fetch_all(session, '/projects.json', 'projects')


def test_malformed_json_raises(session, fake_transport):
    fake_transport.queue(b'{"projects": [')
    with pytest.raises(DecodeError):
        fetch_all(session, '/projects.json', 'projects')
