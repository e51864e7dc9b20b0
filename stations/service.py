"""The operations the outside world uses to record and look up observations.

Anything here can raise ValidationError, which means the caller sent bad
input. Everything else is a server-side problem.
"""

import asyncio
import collections.abc
import logging

from records import ValidationError

from .observation import Observation, now_ms

__all__ = ['DEFAULT_OBSERVATION_SPAN', 'get_observations', 'add_observation', 'add_observations']

log = logging.getLogger(__name__)

# One day's worth of observations (24 * 60 * 60 * 1000)
DEFAULT_OBSERVATION_SPAN = 86400000


async def get_observations(storage, *, observation_type=None, station_key=None,
                           start_time=None, end_time=None, now=None, span=DEFAULT_OBSERVATION_SPAN):
    if now is None:
        now = now_ms()

    filters = {}
    if observation_type:
        filters['observationType'] = getattr(observation_type, 'value', observation_type)
    if station_key:
        filters['stationKey'] = station_key

    if start_time is None:
        start_time = now - span
    if end_time is None:
        end_time = now
    filters['observationTime'] = {'between': [start_time, end_time]}

    return await Observation.select_all(storage, filters)


def _with_time(obj):
    # observationTime is filled in by sync(), but validation still wants it.
    if not isinstance(obj, collections.abc.Mapping):
        return obj
    return {**obj, 'observationTime': now_ms()}


async def add_observation(storage, obj):
    """Records a single observation and returns it"""
    observation = Observation.create_from_object(_with_time(obj))
    await observation.sync(storage)
    log.info('recorded observation %s from %s', observation.id, observation.stationKey)
    return observation


async def add_observations(storage, objs):
    """Records multiple observations and returns them.

    Nothing is written unless every observation is valid.
    """
    if not isinstance(objs, list):
        raise ValidationError([f'Expected a list of observations, got {type(objs).__name__}'])

    observations = []
    errors = []
    for index, obj in enumerate(objs):
        try:
            observations.append(Observation.create_from_object(_with_time(obj)))
        except ValidationError as e:
            errors.extend(f'[{index}] {message}' for message in e.errors)

    if errors:
        raise ValidationError(errors)

    await asyncio.gather(*(o.sync(storage) for o in observations))
    log.info('recorded %d observations', len(observations))
    return observations
