"""Tests for ZoneRecordCache"""
import pytest

import doubles
from doubles import record
from aaaasync import DirectoryUnavailable
from aaaasync.cache import ZoneRecordCache


@pytest.fixture
def populated_client():
    return doubles.FakeDirectoryClient({
        'zone1': [record('r1', 'www.example.com', '2001:db8::1')],
        'zone2': [],
    })


def test_listed_once_per_zone(populated_client):
    """Test that each zone is listed only on first use"""
    cache = ZoneRecordCache(populated_client)

    first = cache.records_for('zone1')
    second = cache.records_for('zone1')
    cache.records_for('zone2')

    assert first == [record('r1', 'www.example.com', '2001:db8::1')]
    assert second is first
    assert populated_client.list_calls == ['zone1', 'zone2']


def test_unknown_zone_empty(client):
    """Test that a zone with no records gives an empty list"""
    assert ZoneRecordCache(client).records_for('zone1') == []


def test_failure_remembered(client):
    """Test that a failed listing is not retried within the same cache"""
    client.list_errors.add('zone1')
    cache = ZoneRecordCache(client)

    with pytest.raises(DirectoryUnavailable) as first:
        cache.records_for('zone1')
    with pytest.raises(DirectoryUnavailable) as second:
        cache.records_for('zone1')

    assert second.value is first.value
    assert client.list_calls == ['zone1']


def test_new_cache_lists_again(populated_client):
    """Test that a fresh cache lists the zone again"""
    ZoneRecordCache(populated_client).records_for('zone1')
    ZoneRecordCache(populated_client).records_for('zone1')

    assert populated_client.list_calls == ['zone1', 'zone1']


def test_record_created(populated_client):
    """Test that created records join the snapshot of a listed zone"""
    cache = ZoneRecordCache(populated_client)
    cache.records_for('zone1')
    new = record('r2', 'mail.example.com', '2001:db8::1')

    cache.record_created('zone1', new)

    assert cache.records_for('zone1')[-1] == new
    assert populated_client.list_calls == ['zone1']


def test_record_created_unlisted_zone(populated_client):
    """Test that a created record does not stand in for a real listing"""
    cache = ZoneRecordCache(populated_client)

    cache.record_created('zone2', record('r2', 'www.example.org',
                                         '2001:db8::1'))

    assert cache.records_for('zone2') == []
    assert populated_client.list_calls == ['zone2']


def test_record_updated(populated_client):
    """Test that an updated record replaces the old one in the snapshot"""
    cache = ZoneRecordCache(populated_client)
    cache.records_for('zone1')
    updated = record('r1', 'www.example.com', '2001:db8::2')

    cache.record_updated('zone1', updated)

    assert cache.records_for('zone1') == [updated]


def test_record_updated_unknown_id(populated_client):
    """Test that an updated record with an unknown ID is appended"""
    cache = ZoneRecordCache(populated_client)
    cache.records_for('zone1')
    updated = record('r9', 'mail.example.com', '2001:db8::2')

    cache.record_updated('zone1', updated)

    assert cache.records_for('zone1') == [
        record('r1', 'www.example.com', '2001:db8::1'),
        updated,
    ]


def test_record_updated_unlisted_zone(populated_client):
    """Test that an update for an unlisted zone is ignored"""
    cache = ZoneRecordCache(populated_client)

    cache.record_updated('zone1', record('r1', 'www.example.com',
                                         '2001:db8::2'))

    assert cache.records_for('zone1') == [
        record('r1', 'www.example.com', '2001:db8::1'),
    ]


def test_snapshot_isolated_from_client(populated_client):
    """Test that the snapshot doesn't change behind the cache's back"""
    cache = ZoneRecordCache(populated_client)
    records = cache.records_for('zone1')

    populated_client.zones['zone1'].clear()

    assert len(records) == 1
