from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

ModeName = Literal["walk", "bike", "drive"]
VehicleModeName = Literal["bike", "drive"]


class GeoPointSchema(BaseModel):
    lat: float = Field(..., ge=-90.0, le=90.0)
    lon: float = Field(..., ge=-180.0, le=180.0)


class SegmentSpotSchema(BaseModel):
    kind: Literal["segment"]
    segment_id: int
    dist_along_m: float = Field(0.0, ge=0.0)


class BuildingSpotSchema(BaseModel):
    kind: Literal["building"]
    building_id: int


class NodeSpotSchema(BaseModel):
    kind: Literal["node"]
    node_id: int


class PointSpotSchema(BaseModel):
    """A coordinate, snapped to the nearest intersection."""

    kind: Literal["point"]
    point: GeoPointSchema


SpotSchema = Annotated[
    Union[SegmentSpotSchema, BuildingSpotSchema, NodeSpotSchema, PointSpotSchema],
    Field(discriminator="kind"),
]


class ComponentSummarySchema(BaseModel):
    component_count: int
    vertex_count: int
    main_size: int
    disconnected_count: int
    main_ratio: float


class ComponentsSchema(BaseModel):
    mode: ModeName
    vertex_kind: Literal["segment", "node"]
    main: list[int]
    other: list[int]
    summary: ComponentSummarySchema


class VehicleReachRequestSchema(BaseModel):
    source: SpotSchema
    mode: VehicleModeName = "drive"
    ceiling_s: float = Field(..., ge=0.0)


class WalkingReachRequestSchema(BaseModel):
    sources: list[int] = []
    ceiling_s: float = Field(..., ge=0.0)


class BuildingCostSchema(BaseModel):
    building_id: int
    cost_s: float


class ReachabilitySchema(BaseModel):
    ceiling_s: float
    costs: list[BuildingCostSchema] = []


class MovementCostRequestSchema(BaseModel):
    segment_id: int
    to_segment_id: int
    mode: ModeName = "drive"


class MovementCostSchema(BaseModel):
    segment_id: int
    to_segment_id: int
    mode: ModeName
    cost_s: float | None = None
    allowed: bool


class GraphInfoSchema(BaseModel):
    nodes: int
    segments: int
    movements: int
    buildings: int
