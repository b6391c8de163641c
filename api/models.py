"""
API request and response models for OceanOS REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py,
submissions/models.py and catalog/models.py, which own the internal domain
representation. Route handlers map between the two via the from_* factories.

Wire format is camelCase (submittedBy, reviewNotes, accessToken, ...). Every
model uses the to_camel alias generator with populate_by_name=True, so Python
code builds models with snake_case names and FastAPI serializes by alias.

Separation of concerns: domain models = domain truth; api/ models = API contract.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from auth.models import Account
from catalog.models import Observation, Sensor, Species
from submissions.models import Submission

# ---------------------------------------------------------------------------
# Base classes
# ---------------------------------------------------------------------------


class _Request(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)


class _CredentialRequest(BaseModel):
    """Base for bodies carrying a password. The password is used byte for byte; other text fields are trimmed."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @field_validator("email", "name", "role", "organization", mode="before", check_fields=False)
    @classmethod
    def _strip_text(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value


class _Response(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class ErrorDetail(_Response):
    """Machine-readable error payload."""

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(_Response):
    """Top-level error envelope returned on 4xx/5xx responses."""

    error: ErrorDetail


class HealthResponse(_Response):
    """Response for GET /api/v1/health."""

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)


class ListMeta(_Response):
    total: int


# ---------------------------------------------------------------------------
# Auth -- requests
# ---------------------------------------------------------------------------


class LoginRequest(_CredentialRequest):
    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=128)


class RegisterRequest(_CredentialRequest):
    """Request body for POST /api/v1/auth/register.

    role stays a plain string here so an unknown role is reported by the
    gateway as invalid_role (400) rather than a generic 422.
    """

    email: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(min_length=6, max_length=128)
    name: str = Field(min_length=1, max_length=255)
    role: str = Field(max_length=30)
    organization: Optional[str] = Field(default=None, max_length=255)


class RefreshRequest(_Request):
    refresh_token: str = Field(min_length=1, max_length=4096)


class LogoutRequest(_Request):
    refresh_token: Optional[str] = Field(default=None, max_length=4096)


# ---------------------------------------------------------------------------
# Auth -- responses
# ---------------------------------------------------------------------------


class UserOut(_Response):
    id: str
    email: str
    name: str
    role: str
    organization: Optional[str]
    created_at: str
    is_active: bool

    @classmethod
    def from_account(cls, account: Account) -> "UserOut":
        return cls(
            id=account.id,
            email=account.email,
            name=account.name,
            role=account.role.value,
            organization=account.organization,
            created_at=account.created_at,
            is_active=account.is_active,
        )


class AuthResponse(_Response):
    """Response for POST /auth/login and POST /auth/register."""

    access_token: str
    refresh_token: str
    user: UserOut


class RefreshResponse(_Response):
    access_token: str


class MeResponse(_Response):
    user: UserOut


class LogoutResponse(_Response):
    success: bool = True


# ---------------------------------------------------------------------------
# Submissions
# ---------------------------------------------------------------------------


class SubmissionCreate(_Request):
    """Request body for POST /api/v1/submissions.

    data_type is a plain string and data is Any on purpose: the workflow
    validates both and reports failures as validation_error (400).
    """

    title: str = Field(min_length=1, max_length=255)
    description: str = Field(default="", max_length=5000)
    data_type: str = Field(max_length=30)
    data: Any = Field(default_factory=dict)
    attachments: Optional[list[str]] = Field(default=None, max_length=20)


class SubmissionUpdate(_Request):
    """Request body for PUT /api/v1/submissions/{id}.

    Unknown keys (id, status, submittedBy, ...) are ignored by pydantic, so
    the server-side whitelist is exactly the fields declared here.
    """

    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=5000)
    data_type: Optional[str] = Field(default=None, max_length=30)
    data: Any = None
    attachments: Optional[list[str]] = Field(default=None, max_length=20)


class ReviewRequest(_Request):
    """action stays a plain string; the workflow reports unknown actions as validation_error (400)."""

    action: str = Field(max_length=30)
    notes: Optional[str] = Field(default=None, max_length=2000)


class SubmissionOut(_Response):
    id: str
    title: str
    description: str
    data_type: str
    submitted_by: str
    submitted_at: str
    status: str
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[str] = None
    review_notes: Optional[str] = None
    data: dict[str, Any]
    attachments: list[str]

    @classmethod
    def from_submission(cls, sub: Submission) -> "SubmissionOut":
        return cls(
            id=sub.id,
            title=sub.title,
            description=sub.description,
            data_type=sub.data_type.value,
            submitted_by=sub.submitted_by,
            submitted_at=sub.submitted_at,
            status=sub.status.value,
            reviewed_by=sub.reviewed_by,
            reviewed_at=sub.reviewed_at,
            review_notes=sub.review_notes,
            data=sub.data,
            attachments=sub.attachments,
        )


class SubmissionListResponse(_Response):
    submissions: list[SubmissionOut]
    meta: ListMeta


class SubmissionResponse(_Response):
    submission: SubmissionOut
    message: Optional[str] = None


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


class SpeciesOut(_Response):
    id: str
    scientific_name: str
    common_name: str
    taxonomy: dict[str, str]
    curator_notes: str

    @classmethod
    def from_species(cls, s: Species) -> "SpeciesOut":
        return cls(
            id=s.id,
            scientific_name=s.scientific_name,
            common_name=s.common_name,
            taxonomy=s.taxonomy,
            curator_notes=s.curator_notes,
        )


class SpeciesSearchMeta(_Response):
    total: int
    q: str


class SpeciesSearchResponse(_Response):
    results: list[SpeciesOut]
    meta: SpeciesSearchMeta


class SpeciesResponse(_Response):
    species: SpeciesOut


class SpeciesCreate(_Request):
    """Request body for POST /api/v1/species."""

    scientific_name: str = Field(min_length=1, max_length=255)
    common_name: str = Field(min_length=1, max_length=255)
    taxonomy: dict[str, str] = Field(default_factory=dict)
    curator_notes: str = Field(default="", max_length=2000)


class ObservationOut(_Response):
    id: str
    species_id: str
    species_name: str
    observed_at: str
    recorded_by: str
    validated_by: Optional[str]
    dataset_id: str
    depth: Optional[float]
    temperature: Optional[float]
    geom: dict[str, Any]

    @classmethod
    def from_observation(cls, o: Observation) -> "ObservationOut":
        return cls(
            id=o.id,
            species_id=o.species_id,
            species_name=o.species_name,
            observed_at=o.observed_at,
            recorded_by=o.recorded_by,
            validated_by=o.validated_by,
            dataset_id=o.dataset_id,
            depth=o.depth,
            temperature=o.temperature,
            geom={"type": "Point", "coordinates": [o.lon, o.lat]},
        )


class ObservationResponse(_Response):
    observation: ObservationOut


class ObservationCreate(_Request):
    """Request body for POST /api/v1/observations.

    recordedBy defaults to the caller's name and observedAt to the time of the
    request.
    """

    species_id: str = Field(min_length=1, max_length=64)
    lon: float = Field(ge=-180, le=180)
    lat: float = Field(ge=-90, le=90)
    dataset_id: str = Field(min_length=1, max_length=255)
    observed_at: Optional[datetime] = None
    recorded_by: Optional[str] = Field(default=None, min_length=1, max_length=255)
    validated_by: Optional[str] = Field(default=None, max_length=255)
    depth: Optional[float] = Field(default=None, ge=0)
    temperature: Optional[float] = None


class Feature(BaseModel):
    """GeoJSON Feature. Property keys keep GeoJSON's snake_case convention."""

    model_config = ConfigDict(frozen=True)

    type: str = "Feature"
    id: str
    properties: dict[str, Any]
    geometry: dict[str, Any]

    @classmethod
    def from_observation(cls, o: Observation) -> "Feature":
        return cls(
            id=o.id,
            properties={
                "species_id": o.species_id,
                "species_name": o.species_name,
                "observed_at": o.observed_at,
                "dataset_id": o.dataset_id,
                "recorded_by": o.recorded_by,
                "validated_by": o.validated_by,
                "depth": o.depth,
                "temperature": o.temperature,
            },
            geometry={"type": "Point", "coordinates": [o.lon, o.lat]},
        )


class FeatureCollection(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str = "FeatureCollection"
    features: list[Feature]


class CountMeta(_Response):
    count: int


class GeospatialResponse(_Response):
    data: FeatureCollection
    meta: CountMeta


class SensorOut(_Response):
    id: str
    label: str
    location: dict[str, Any]
    meta: dict[str, str]

    @classmethod
    def from_sensor(cls, s: Sensor) -> "SensorOut":
        return cls(
            id=s.id,
            label=s.label,
            location={"type": "Point", "coordinates": [s.lon, s.lat]},
            meta={"vendor": s.vendor},
        )


class SensorListResponse(_Response):
    sensors: list[SensorOut]
    meta: ListMeta


class SeriesPoint(_Response):
    time: str
    value: float


class UnitMeta(_Response):
    unit: str


class SensorDataResponse(_Response):
    sensor_id: str
    agg: str
    data: list[SeriesPoint]
    meta: UnitMeta


class StatsTotals(_Response):
    observations: int
    species: int
    sensors: int
    submissions: int


class StatsResponse(_Response):
    totals: StatsTotals
    submissions_by_status: dict[str, int]
    last_updated: str
