import types

import pytest

from records import ValidationError
from stations import Observation, ObservationType, add_observation, add_observations, get_observations
import stations.observation
import stations.service

NOW = 1_600_000_000_000


@pytest.fixture(autouse=True)
def frozen_time(monkeypatch):
    monkeypatch.setattr(stations.observation, 'now_ms', lambda: NOW)
    monkeypatch.setattr(stations.service, 'now_ms', lambda: NOW)


def _observation(**kwargs):
    data = {
        'stationKey': 'roof',
        'stationName': 'Roof',
        'observationType': 'temperature',
        'observationValue': 21.5,
    }
    data.update(kwargs)
    return data


@pytest.mark.asyncio
async def test_add_observation_stamps_the_time(sqlite_storage):
    observation = await add_observation(sqlite_storage, _observation())

    assert observation.id is not None
    assert observation.observationTime == NOW

    stored = await Observation.select_by_id(sqlite_storage, observation.id)
    assert stored.to_dict() == {
        'id': observation.id,
        'stationKey': 'roof',
        'stationName': 'Roof',
        'observationType': 'temperature',
        'observationTime': NOW,
        'observationValue': 21.5,
    }


@pytest.mark.asyncio
async def test_add_observation_rejects_bad_input(sqlite_storage):
    with pytest.raises(ValidationError) as info:
        await add_observation(sqlite_storage, {'observationValue': 'warm'})

    assert info.value.errors == [
        'Expected value for column "stationKey"',
        'Expected value for column "stationName"',
        'Expected value for column "observationType"',
        "Expected type number for column \"observationValue\". Got: 'warm'",
    ]
    assert await Observation.select_all(sqlite_storage) == []


@pytest.mark.asyncio
async def test_add_observations(sqlite_storage):
    observations = await add_observations(sqlite_storage, [
        _observation(),
        _observation(observationType='humidity', observationValue=40),
    ])

    assert len({o.id for o in observations}) == 2
    assert len(await Observation.select_all(sqlite_storage)) == 2


@pytest.mark.asyncio
async def test_add_observations_writes_nothing_if_one_is_bad(sqlite_storage):
    with pytest.raises(ValidationError) as info:
        await add_observations(sqlite_storage, [
            _observation(),
            _observation(stationName=None),
            'nope',
        ])

    assert info.value.errors == [
        '[1] Expected value for column "stationName"',
        '[2] Expected an object, got str',
    ]
    assert await Observation.select_all(sqlite_storage) == []


@pytest.mark.asyncio
async def test_add_observations_needs_a_list(sqlite_storage):
    with pytest.raises(ValidationError, match='Expected a list'):
        await add_observations(sqlite_storage, _observation())


@pytest.mark.asyncio
async def test_get_observations_filters(sqlite_storage, monkeypatch):
    await add_observations(sqlite_storage, [
        _observation(),
        _observation(stationKey='yard', observationType='humidity'),
    ])
    monkeypatch.setattr(stations.observation, 'now_ms', lambda: NOW - 2 * 86400000)
    await add_observation(sqlite_storage, _observation())

    recent = await get_observations(sqlite_storage, now=NOW)
    assert len(recent) == 2

    humidity = await get_observations(sqlite_storage, observation_type=ObservationType.HUMIDITY, now=NOW)
    assert [o.stationKey for o in humidity] == ['yard']

    roof = await get_observations(sqlite_storage, station_key='roof', start_time=0, end_time=NOW)
    assert len(roof) == 2


@pytest.mark.asyncio
async def test_get_observations_default_window(recording_storage):
    await get_observations(recording_storage, station_key='roof')

    (query, params), = recording_storage.statements
    assert query == (
        'SELECT * FROM "observation" WHERE "stationKey" = $stationKey '
        'AND "observationTime" BETWEEN $observationTime_start AND $observationTime_end'
    )
    assert params == {
        'stationKey': 'roof',
        'observationTime_start': NOW - 86400000,
        'observationTime_end': NOW,
    }


@pytest.mark.asyncio
async def test_add_observation_takes_any_mapping(sqlite_storage):
    observation = await add_observation(sqlite_storage, types.MappingProxyType(_observation()))

    assert observation.observationTime == NOW
    assert len(await Observation.select_all(sqlite_storage)) == 1
