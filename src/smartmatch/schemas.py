from pydantic import BaseModel, Field


# --- Catalog reference data ---

class BrandEntry(BaseModel):
    name: str
    spell: str | None = None

    model_config = {"frozen": True}


class CatalogSKU(BaseModel):
    id: int | str
    name: str
    spu_id: int | str | None = None
    color: str | None = None
    spec: str | None = None


class CatalogProduct(BaseModel):
    """Catalog SPU with its sellable variants."""

    id: int | str
    name: str
    brand: str | None = None
    skus: list[CatalogSKU] = []


# --- Extraction ---

class ExtractRequest(BaseModel):
    text: str = Field(..., min_length=1)


class VersionResponse(BaseModel):
    type: str  # "network" / "product"
    value: str
    priority: int = 0


class AttributesResponse(BaseModel):
    text: str
    normalized: str
    brand: str | None = None
    model: str | None = None
    version: VersionResponse | None = None
    capacity: str | None = None
    color: str | None = None
    watch_size: str | None = None
    watch_band: str | None = None


# --- Scoring ---

class ScoreRequest(BaseModel):
    text_a: str = Field(..., min_length=1)
    text_b: str = Field(..., min_length=1)


class ScoreResponse(BaseModel):
    score: float
    filtered: bool
    is_likely_match: bool
    brand_match: bool
    model_match: bool
    reasons: list[str] = []


# --- Catalog matching ---

class MatchRequest(BaseModel):
    texts: list[str] = Field(..., min_length=1, max_length=500)


class SpuMatch(BaseModel):
    id: int | str
    name: str
    brand: str | None = None
    score: float
    priority: int


class SkuMatch(BaseModel):
    id: int | str
    name: str
    score: float


class MatchItem(BaseModel):
    text: str
    spu: SpuMatch | None = None
    sku: SkuMatch | None = None


class MatchResponse(BaseModel):
    items: list[MatchItem]
    matched: int
    total: int


class ReloadResponse(BaseModel):
    brands: int
    products: int
    models: int


# --- System ---

class ServiceStatus(BaseModel):
    name: str
    status: str  # "ok" / "degraded" / "unavailable"
    detail: str = ""


class HealthResponse(BaseModel):
    status: str = "ok"  # "ok" / "degraded"
    brand_count: int = 0
    product_count: int = 0
    model_count: int = 0
    services: list[ServiceStatus] = []
