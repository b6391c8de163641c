"""
catalog/store.py -- In-memory catalog of species, observations and sensors.

The catalog starts from fixture data built once per process. Species and
observations can be appended through add_species()/add_observation(); nothing
is ever edited or removed, so readers iterate the lists without locking and
only the append path (id assignment plus append) holds self._lock. Sensor
readings are synthesized on demand from a sinusoid of wall-clock time so
charts have something deterministic to draw.

Usage:
    catalog = CatalogStore()
    catalog.search_species("tuna")
    catalog.add_species("Thunnus obesus", "Bigeye Tuna")
    catalog.observations_in(bbox=(70.0, 10.0, 80.0, 20.0))
    catalog.sensor_series("s_1", start, end, agg="1hr")
"""

from __future__ import annotations

import math
import threading
from datetime import datetime, timedelta, timezone
from typing import Optional

from catalog.models import Observation, Sensor, Species
from core.errors import NotFound, ValidationError

MAX_SERIES_POINTS = 2000

# Step between synthesized readings per aggregation level.
_AGG_STEP = {
    "raw": timedelta(minutes=1),
    "1min": timedelta(minutes=1),
    "1hr": timedelta(hours=1),
}

_SPECIES = [
    Species(
        id="sp_1",
        scientific_name="Thunnus albacares",
        common_name="Yellowfin Tuna",
        taxonomy={"kingdom": "Animalia", "phylum": "Chordata", "class": "Actinopterygii"},
        curator_notes="Pelagic species; schools near temperature fronts.",
    ),
    Species(
        id="sp_2",
        scientific_name="Rastrelliger kanagurta",
        common_name="Indian Mackerel",
        taxonomy={"kingdom": "Animalia", "phylum": "Chordata", "class": "Actinopterygii"},
        curator_notes="Coastal shoaling species of the west coast fisheries.",
    ),
    Species(
        id="sp_3",
        scientific_name="Sardinella longiceps",
        common_name="Oil Sardine",
        taxonomy={"kingdom": "Animalia", "phylum": "Chordata", "class": "Actinopterygii"},
    ),
    Species(
        id="sp_4",
        scientific_name="Pampus argenteus",
        common_name="Silver Pomfret",
        taxonomy={"kingdom": "Animalia", "phylum": "Chordata", "class": "Actinopterygii"},
    ),
    Species(
        id="sp_5",
        scientific_name="Harpadon nehereus",
        common_name="Bombay Duck",
        taxonomy={"kingdom": "Animalia", "phylum": "Chordata", "class": "Actinopterygii"},
    ),
    Species(
        id="sp_6",
        scientific_name="Katsuwonus pelamis",
        common_name="Skipjack Tuna",
        taxonomy={"kingdom": "Animalia", "phylum": "Chordata", "class": "Actinopterygii"},
    ),
]

# (id, species_id, days_ago, lon, lat, recorded_by, validated_by, dataset_id, depth, temperature)
_OBSERVATION_ROWS = [
    ("obs_1", "sp_1", 1, 72.8777, 19.0760, "Dr. Marine Biologist", "Curator A. Patel", "mumbai_fisheries_2024", 50, 28.5),
    ("obs_2", "sp_2", 2, 75.7139, 11.2588, "Fisherman Kumar", "Dr. R. Nair", "kerala_coastal_survey", 25, 29.2),
    ("obs_3", "sp_3", 3, 80.2707, 13.0827, "Research Vessel Sagar", "Prof. S. Krishnan", "tn_marine_biodiversity", 15, 27.8),
    ("obs_4", "sp_1", 4, 88.3639, 22.5726, "Community Report", None, "community_sightings", 45, 26.5),
    ("obs_5", "sp_4", 5, 74.1240, 15.2993, "Coastal Patrol", "Marine Officer", "goa_fisheries_monitoring", 30, 28.9),
    ("obs_6", "sp_5", 6, 69.6293, 23.0225, "Fisheries Cooperative", "Regional Inspector", "gujarat_catch_data", 20, 25.4),
    ("obs_7", "sp_6", 7, 73.5, 17.8, "Research Vessel Sindhu Sadhana", "Chief Marine Scientist", "deep_sea_exploration", 120, 24.1),
    ("obs_8", "sp_2", 8, 85.0985, 19.8135, "Odisha Marine Survey", "State Fisheries Director", "odisha_coastal_assessment", 35, 27.2),
]

_SENSORS = [
    Sensor(id="s_1", label="Pier Temp Probe", lon=72.82, lat=18.92, vendor="Acme"),
    Sensor(id="s_2", label="Buoy 7 pH", lon=80.30, lat=13.10, vendor="OceanX", unit="pH"),
]


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC so they compare with the aware fixture timestamps."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_bbox(raw: str) -> tuple[float, float, float, float]:
    """Parse "minX,minY,maxX,maxY" into floats. Raises ValidationError when malformed."""
    parts = raw.split(",")
    if len(parts) != 4:
        raise ValidationError("bbox must be minX,minY,maxX,maxY.")
    try:
        min_x, min_y, max_x, max_y = (float(p) for p in parts)
    except ValueError:
        raise ValidationError("bbox values must be numbers.") from None
    return min_x, min_y, max_x, max_y


class CatalogStore:
    def __init__(self, now: Optional[datetime] = None) -> None:
        now = now or datetime.now(timezone.utc)
        self._lock = threading.Lock()
        names = {s.id: s.common_name for s in _SPECIES}
        self.species: list[Species] = list(_SPECIES)
        self.sensors: list[Sensor] = list(_SENSORS)
        self.observations: list[Observation] = [
            Observation(
                id=obs_id,
                species_id=species_id,
                species_name=names[species_id],
                observed_at=(now - timedelta(days=days_ago)).isoformat(),
                lon=lon,
                lat=lat,
                recorded_by=recorded_by,
                validated_by=validated_by,
                dataset_id=dataset_id,
                depth=depth,
                temperature=temperature,
            )
            for (obs_id, species_id, days_ago, lon, lat, recorded_by, validated_by, dataset_id, depth, temperature)
            in _OBSERVATION_ROWS
        ]

    # ------------------------------------------------------------------
    # Species
    # ------------------------------------------------------------------

    def search_species(self, name: str = "") -> list[Species]:
        """Case-insensitive substring match on scientific or common name. Empty matches all."""
        needle = name.strip().lower()
        return [
            s for s in self.species if needle in s.scientific_name.lower() or needle in s.common_name.lower()
        ]

    def get_species(self, species_id: str) -> Species:
        for s in self.species:
            if s.id == species_id:
                return s
        raise NotFound("Species not found.")

    def add_species(
        self,
        scientific_name: str,
        common_name: str,
        taxonomy: Optional[dict[str, str]] = None,
        curator_notes: str = "",
    ) -> Species:
        """Append a species with the next sp_N id and return it."""
        with self._lock:
            species = Species(
                id=f"sp_{len(self.species) + 1}",
                scientific_name=scientific_name,
                common_name=common_name,
                taxonomy=dict(taxonomy or {}),
                curator_notes=curator_notes,
            )
            self.species.append(species)
        return species

    # ------------------------------------------------------------------
    # Observations
    # ------------------------------------------------------------------

    def observations_in(
        self,
        bbox: Optional[tuple[float, float, float, float]] = None,
        species_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[Observation]:
        """Filter observations; every bound is inclusive and optional."""
        start, end = as_utc(start), as_utc(end)
        result = []
        for obs in self.observations:
            if species_id and obs.species_id != species_id:
                continue
            observed = datetime.fromisoformat(obs.observed_at)
            if start and observed < start:
                continue
            if end and observed > end:
                continue
            if bbox:
                min_x, min_y, max_x, max_y = bbox
                if not (min_x <= obs.lon <= max_x and min_y <= obs.lat <= max_y):
                    continue
            result.append(obs)
        return result

    def get_observation(self, observation_id: str) -> Observation:
        for obs in self.observations:
            if obs.id == observation_id:
                return obs
        raise NotFound("Observation not found.")

    def add_observation(
        self,
        species_id: str,
        lon: float,
        lat: float,
        recorded_by: str,
        dataset_id: str,
        observed_at: Optional[datetime] = None,
        validated_by: Optional[str] = None,
        depth: Optional[float] = None,
        temperature: Optional[float] = None,
    ) -> Observation:
        """Append an observation with the next obs_N id and return it.

        species_id must name a catalog species (ValidationError otherwise);
        observed_at defaults to now.
        """
        try:
            species = self.get_species(species_id)
        except NotFound:
            raise ValidationError(f"Unknown species {species_id!r}.") from None
        if not (-180 <= lon <= 180 and -90 <= lat <= 90):
            raise ValidationError("Coordinates must be lon -180..180 and lat -90..90.")
        observed = as_utc(observed_at) or datetime.now(timezone.utc)
        with self._lock:
            observation = Observation(
                id=f"obs_{len(self.observations) + 1}",
                species_id=species.id,
                species_name=species.common_name,
                observed_at=observed.isoformat(),
                lon=lon,
                lat=lat,
                recorded_by=recorded_by,
                dataset_id=dataset_id,
                validated_by=validated_by,
                depth=depth,
                temperature=temperature,
            )
            self.observations.append(observation)
        return observation

    # ------------------------------------------------------------------
    # Sensors
    # ------------------------------------------------------------------

    def get_sensor(self, sensor_id: str) -> Sensor:
        for sensor in self.sensors:
            if sensor.id == sensor_id:
                return sensor
        raise NotFound("Sensor not found.")

    def sensor_series(
        self,
        sensor_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        agg: str = "1hr",
    ) -> list[dict]:
        """Synthesize readings from start to end (default: the last 24 hours).

        Unknown agg values fall back to hourly. The series is capped at
        MAX_SERIES_POINTS so an unbounded range cannot exhaust memory.
        """
        self.get_sensor(sensor_id)
        start, end = as_utc(start), as_utc(end)
        end = end or datetime.now(timezone.utc)
        start = start or end - timedelta(days=1)
        if start > end:
            raise ValidationError("start must be before end.")
        step = _AGG_STEP.get(agg, _AGG_STEP["1hr"])
        points = []
        t = start
        while t <= end and len(points) < MAX_SERIES_POINTS:
            hours = t.timestamp() / 3600
            points.append({"time": t.isoformat(), "value": round(10 + 5 * math.sin(hours), 4)})
            t += step
        return points
