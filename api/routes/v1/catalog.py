"""
api/routes/v1/catalog.py -- Marine catalog routes.

Reads cover species search, observation geometry, sensor series and
dashboard stats. Writes are limited to appending a species or an
observation; the catalog never edits or deletes.

Route registration order matters: /observations/geospatial must be added
before /observations/{observation_id} or FastAPI would capture the literal
"geospatial" as an observation id.

Every route requires a bearer access token. The catalog lives in
app.state.catalog; /stats additionally reads submission counts from
app.state.submissions.
"""

import logging
from datetime import datetime, timezone
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, Request

from api.models import (
    CountMeta,
    Feature,
    FeatureCollection,
    GeospatialResponse,
    ListMeta,
    ObservationCreate,
    ObservationOut,
    ObservationResponse,
    SensorDataResponse,
    SensorListResponse,
    SensorOut,
    SeriesPoint,
    SpeciesCreate,
    SpeciesOut,
    SpeciesResponse,
    SpeciesSearchMeta,
    SpeciesSearchResponse,
    StatsResponse,
    StatsTotals,
    UnitMeta,
)
from auth.dependencies import get_current_account
from auth.models import Account
from catalog.store import CatalogStore, parse_bbox

logger = logging.getLogger("oceanos.api")

router = APIRouter(dependencies=[Depends(get_current_account)])


@router.get("/species", response_model=SpeciesSearchResponse)
def search_species(
    request: Request,
    name: Annotated[str, Query(max_length=200)] = "",
) -> SpeciesSearchResponse:
    """Case-insensitive substring search over scientific and common names."""
    catalog: CatalogStore = request.app.state.catalog
    results = catalog.search_species(name)
    return SpeciesSearchResponse(
        results=[SpeciesOut.from_species(s) for s in results],
        meta=SpeciesSearchMeta(total=len(results), q=name),
    )


@router.get("/species/{species_id}", response_model=SpeciesResponse)
def get_species(request: Request, species_id: str) -> SpeciesResponse:
    catalog: CatalogStore = request.app.state.catalog
    return SpeciesResponse(species=SpeciesOut.from_species(catalog.get_species(species_id)))


@router.post("/species", response_model=SpeciesResponse, status_code=201)
def create_species(request: Request, body: SpeciesCreate) -> SpeciesResponse:
    catalog: CatalogStore = request.app.state.catalog
    species = catalog.add_species(
        scientific_name=body.scientific_name,
        common_name=body.common_name,
        taxonomy=body.taxonomy,
        curator_notes=body.curator_notes,
    )
    logger.info("Species %s added (%s)", species.id, species.scientific_name)
    return SpeciesResponse(species=SpeciesOut.from_species(species))


@router.get("/observations/geospatial", response_model=GeospatialResponse)
def observations_geospatial(
    request: Request,
    bbox: Annotated[Optional[str], Query(max_length=200)] = None,
    species_id: Annotated[Optional[str], Query(alias="speciesId", max_length=64)] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> GeospatialResponse:
    """Return matching observations as a GeoJSON FeatureCollection.

    Query params:
        bbox      -- minX,minY,maxX,maxY (lon/lat), inclusive
        speciesId -- restrict to one species
        start/end -- ISO 8601 bounds on observedAt, inclusive
    """
    catalog: CatalogStore = request.app.state.catalog
    found = catalog.observations_in(
        bbox=parse_bbox(bbox) if bbox else None,
        species_id=species_id,
        start=start,
        end=end,
    )
    return GeospatialResponse(
        data=FeatureCollection(features=[Feature.from_observation(o) for o in found]),
        meta=CountMeta(count=len(found)),
    )


@router.get("/observations/{observation_id}", response_model=ObservationResponse)
def get_observation(request: Request, observation_id: str) -> ObservationResponse:
    catalog: CatalogStore = request.app.state.catalog
    return ObservationResponse(observation=ObservationOut.from_observation(catalog.get_observation(observation_id)))


@router.post("/observations", response_model=ObservationResponse, status_code=201)
def create_observation(
    request: Request,
    body: ObservationCreate,
    account: Account = Depends(get_current_account),
) -> ObservationResponse:
    """Record a sighting of a catalog species. An unknown speciesId is a 400."""
    catalog: CatalogStore = request.app.state.catalog
    observation = catalog.add_observation(
        species_id=body.species_id,
        lon=body.lon,
        lat=body.lat,
        recorded_by=body.recorded_by or account.name,
        dataset_id=body.dataset_id,
        observed_at=body.observed_at,
        validated_by=body.validated_by,
        depth=body.depth,
        temperature=body.temperature,
    )
    logger.info("Observation %s added by %s", observation.id, account.id)
    return ObservationResponse(observation=ObservationOut.from_observation(observation))


@router.get("/sensors", response_model=SensorListResponse)
def list_sensors(request: Request) -> SensorListResponse:
    catalog: CatalogStore = request.app.state.catalog
    return SensorListResponse(
        sensors=[SensorOut.from_sensor(s) for s in catalog.sensors],
        meta=ListMeta(total=len(catalog.sensors)),
    )


@router.get("/sensors/{sensor_id}/data", response_model=SensorDataResponse)
def sensor_data(
    request: Request,
    sensor_id: str,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    agg: Annotated[str, Query(pattern=r"^(raw|1min|1hr)$")] = "1hr",
) -> SensorDataResponse:
    """Synthetic time series for one sensor, defaulting to the last 24 hours."""
    catalog: CatalogStore = request.app.state.catalog
    sensor = catalog.get_sensor(sensor_id)
    points = catalog.sensor_series(sensor_id, start=start, end=end, agg=agg)
    return SensorDataResponse(
        sensor_id=sensor.id,
        agg=agg,
        data=[SeriesPoint(time=p["time"], value=p["value"]) for p in points],
        meta=UnitMeta(unit=sensor.unit),
    )


@router.get("/stats", response_model=StatsResponse)
def stats(request: Request) -> StatsResponse:
    """Dashboard totals: catalog fixture sizes plus submission counts by status."""
    catalog: CatalogStore = request.app.state.catalog
    by_status = request.app.state.submissions.count_by_status()
    return StatsResponse(
        totals=StatsTotals(
            observations=len(catalog.observations),
            species=len(catalog.species),
            sensors=len(catalog.sensors),
            submissions=sum(by_status.values()),
        ),
        submissions_by_status=by_status,
        last_updated=datetime.now(timezone.utc).isoformat(),
    )
