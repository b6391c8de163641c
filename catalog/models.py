"""
catalog/models.py -- Domain dataclasses for the read-mostly marine catalog.

Coordinates follow GeoJSON order: (longitude, latitude).
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class Species:
    id: str
    scientific_name: str
    common_name: str
    taxonomy: dict[str, str] = field(default_factory=dict)
    curator_notes: str = ""


@dataclass
class Observation:
    id: str
    species_id: str
    species_name: str
    observed_at: str  # ISO 8601
    lon: float
    lat: float
    recorded_by: str
    dataset_id: str
    validated_by: Optional[str] = None
    depth: Optional[float] = None  # metres
    temperature: Optional[float] = None  # degrees C


@dataclass
class Sensor:
    id: str
    label: str
    lon: float
    lat: float
    vendor: str
    unit: str = "°C"
