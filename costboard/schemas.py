import datetime as dt
from typing import Annotated, ClassVar, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

# ---- charges.json ----------------------------------------------------------


def _reject_bool(value):
    # lax mode would read true/false as 1/0
    if isinstance(value, bool):
        raise ValueError("must be a number, not a boolean")
    return value


# prices, sizes and amounts: finite, non-negative, numeric strings allowed
Amount = Annotated[float, BeforeValidator(_reject_bool), Field(ge=0, allow_inf_nan=False)]
Count = Annotated[int, BeforeValidator(_reject_bool), Field(ge=0)]


class Document(BaseModel):
    model_config = ConfigDict(frozen=True)


class Resource(Document):
    name: str
    status: Literal["Running", "Stopped"]
    created_date: dt.datetime
    volume: Amount

    @property
    def running(self) -> bool:
        return self.status == "Running"


class InstanceType(Document):
    """Sub-service of a compute service: one instance type and its servers."""
    service: str
    amount_per_iteration: Amount
    iterations_per_month: Optional[Amount] = None
    iteration_name: Optional[str] = None
    enabled_region: Dict[str, List[Resource]] = Field(default_factory=dict)


class SubService(Document):
    """Metered sub-service; each region holds a count or a list of items."""
    service: str
    amount_per_iteration: Amount
    iterations_per_month: Amount
    iteration_name: Optional[str] = None
    enabled_region: Dict[str, Union[Count, list]] = Field(default_factory=dict)


class CatalogEntry(Document):
    name: str
    used_ebs_size: Amount


class ComputeService(Document):
    kind: ClassVar[str] = "compute"
    service: str
    desc: Optional[str] = None
    volume_amount_per_iteration: Amount
    sub_services: List[InstanceType] = Field(default_factory=list)


class CountedService(Document):
    kind: ClassVar[str] = "counted"
    service: str
    desc: Optional[str] = None
    sub_services: List[SubService] = Field(default_factory=list)


class CatalogService(Document):
    kind: ClassVar[str] = "catalog"
    service: str
    desc: Optional[str] = None
    amount_per_iteration: Amount
    sub_services: Dict[str, List[CatalogEntry]] = Field(default_factory=dict)


class FlatService(Document):
    name: str
    desc: Optional[str] = None
    total_amount: Amount


Service = Union[ComputeService, CountedService, CatalogService]

SERVICE_KINDS = {
    "Elastic Compute Cloud": ComputeService,
    "Virtual Private Cloud": CountedService,
    "AMI": CatalogService,
}


class SkippedService(Document):
    index: int
    service: Optional[str] = None
    reason: str


class CostDocument(Document):
    usable_services: List[Service] = Field(default_factory=list)
    default_services: List[FlatService] = Field(default_factory=list)
    skipped_services: List[SkippedService] = Field(default_factory=list)


# ---- report ----------------------------------------------------------------


class CurrentCost(BaseModel):
    storage: float
    compute: float
    total: float
    hours: int
    days: int


class MonthlyCost(BaseModel):
    storage: float
    compute: float
    total: float
    hours: int


class ResourceCost(BaseModel):
    current: CurrentCost
    monthly: MonthlyCost


class ServerLine(BaseModel):
    key: str
    name: str
    status: str
    instance_type: str
    region: str
    volume: float
    created_date: dt.datetime
    instance_price: float
    volume_price: float
    cost: ResourceCost


class SubServiceCost(BaseModel):
    name: str
    monthly: float
    current: float


class RegionCost(BaseModel):
    region: str
    monthly: float
    entries: List[CatalogEntry] = Field(default_factory=list)


class ServiceCost(BaseModel):
    name: str
    kind: str
    description: Optional[str] = None
    monthly: float
    current: float
    sub_services: List[SubServiceCost] = Field(default_factory=list)
    regions: List[RegionCost] = Field(default_factory=list)


class GrandTotal(BaseModel):
    monthly: float
    current: float


class ChartSlice(BaseModel):
    name: str
    cost: float


class ServerSummary(BaseModel):
    running: int
    stopped: int
    server_monthly: float
    server_current: float
    other_monthly: float


class CostReport(BaseModel):
    generated_at: dt.datetime
    monthly_hours: int
    totals: GrandTotal
    over_threshold: bool = False
    services: List[ServiceCost]
    default_services: List[FlatService]
    servers: List[ServerLine]
    chart: List[ChartSlice]
    summary: ServerSummary
    skipped_services: List[SkippedService] = Field(default_factory=list)
