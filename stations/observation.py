import enum
import time

from records import Column, Number, Record, String, register

__all__ = ['ObservationType', 'Observation', 'now_ms']


def now_ms():
    return int(time.time() * 1000)


class ObservationType(str, enum.Enum):
    TEMPERATURE = 'temperature'
    HUMIDITY = 'humidity'
    BAROMETRIC_PRESSURE = 'barometric_pressure'
    AIR_QUALITY_PM25 = 'air_quality_pm25'
    AIR_QUALITY_PM10 = 'air_quality_pm10'
    WIND_SPEED = 'wind_speed'
    WIND_DIRECTION = 'wind_direction'
    BATTERY_VOLTAGE = 'batt_voltage'
    SOLAR_VOLTAGE = 'solar_voltage'


class Observation(Record):
    async def sync(self, storage):
        # Observations are timestamped when they're stored, not when they're made.
        self.observationTime = now_ms()
        await super().sync(storage)


register(Observation, 'observation', {
    'id': Column('observationId', Number, primary_key=True),
    'stationKey': Column('stationKey', String),
    'stationName': Column('stationName', String),
    'observationType': Column('observationType', String),
    'observationTime': Column('observationTime', Number),
    'observationValue': Column('observationValue', Number),
})
