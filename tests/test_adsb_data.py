import pytest

from adsb_data import Label, Position, Snapshot, TrackedObject, parse_aircraft_list
from errors import ParseFailed


def test_parse_adsb_lol_payload():
    payload = {
        'ac': [
            {'hex': 'a1b2c3', 'lat': 37.7, 'lon': -122.4, 'flight': 'UAL123  ',
             'r': 'N37502', 't': 'B738', 'squawk': '4521', 'alt_baro': 12000},
            {'hex': 'ffffff', 'flight': 'NOPOS1'},
        ],
        'now': 1700000000000,
        'total': 2,
    }
    objects = parse_aircraft_list(payload)

    assert objects == [
        TrackedObject(Position(37.7, -122.4),
                      Label(registration='N37502', flight='UAL123', type='B738', squawk='4521')),
    ]


def test_parse_dump1090_payload():
    objects = parse_aircraft_list({'aircraft': [{'hex': 'abc', 'lat': 40, 'lon': -74}]})
    assert objects == [TrackedObject(Position(40.0, -74.0), Label())]


def test_empty_adsb_lol_response_has_no_aircraft():
    assert parse_aircraft_list({'now': 1700000000000, 'total': 0}) == []


@pytest.mark.parametrize("payload", [[], "text", {'msg': 'error'}, {'ac': {'hex': 'abc'}}])
def test_malformed_payloads_fail(payload):
    with pytest.raises(ParseFailed):
        parse_aircraft_list(payload)


def test_records_without_numeric_position_are_skipped():
    payload = {'ac': [{'lat': '37.1', 'lon': -122.0}, {'lat': True, 'lon': 1.0}, 'junk']}
    assert parse_aircraft_list(payload) == []


def test_label_dimensions():
    label = Label(registration='N1', flight='', type='B77W', squawk='7700')
    assert label.fields() == ['N1', 'B77W', '7700']
    assert label.height == 3
    assert label.width == 4
    assert Label().height == 0
    assert Label().width == 0


def test_snapshot_capture_is_immutable():
    snapshot = Snapshot.capture([TrackedObject(Position(1.0, 2.0))])
    assert len(snapshot) == 1
    assert snapshot.captured_at > 0
    assert isinstance(snapshot.objects, tuple)
