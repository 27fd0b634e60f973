from __future__ import annotations

from fastapi import APIRouter, Depends

from src.adapters.api.dependencies import get_connectivity_service
from src.adapters.api.schemas.connectivity import (
    BuildingCostSchema,
    BuildingSpotSchema,
    ComponentsSchema,
    ComponentSummarySchema,
    GraphInfoSchema,
    MovementCostRequestSchema,
    MovementCostSchema,
    NodeSpotSchema,
    ReachabilitySchema,
    SegmentSpotSchema,
    VehicleReachRequestSchema,
    WalkingReachRequestSchema,
)
from src.app.services.connectivity_service import ConnectivityService
from src.domain.models import (
    BuildingSpot,
    GeoPoint,
    NodeSpot,
    SegmentPosition,
    Spot,
    TravelMode,
)

router = APIRouter(tags=["connectivity"])


def _to_spot(schema, service: ConnectivityService) -> Spot:
    if isinstance(schema, SegmentSpotSchema):
        return SegmentPosition(
            segment_id=schema.segment_id, dist_along_m=schema.dist_along_m
        )
    if isinstance(schema, BuildingSpotSchema):
        return BuildingSpot(building_id=schema.building_id)
    if isinstance(schema, NodeSpotSchema):
        return NodeSpot(node_id=schema.node_id)
    return service.spot_for_point(GeoPoint(lat=schema.point.lat, lon=schema.point.lon))


def _costs_to_schema(costs: dict[int, float], ceiling_s: float) -> ReachabilitySchema:
    return ReachabilitySchema(
        ceiling_s=ceiling_s,
        costs=[
            BuildingCostSchema(building_id=building_id, cost_s=cost)
            for building_id, cost in costs.items()
        ],
    )


@router.get("/components/{mode}", response_model=ComponentsSchema)
def get_components(
    mode: TravelMode,
    service: ConnectivityService = Depends(get_connectivity_service),
) -> ComponentsSchema:
    report = service.components(mode)
    summary = report.summary
    return ComponentsSchema(
        mode=mode.value,
        vertex_kind="segment" if mode.is_vehicle else "node",
        main=sorted(report.main),
        other=sorted(report.other),
        summary=ComponentSummarySchema(
            component_count=summary.component_count,
            vertex_count=summary.vertex_count,
            main_size=summary.main_size,
            disconnected_count=summary.disconnected_count,
            main_ratio=summary.main_ratio,
        ),
    )


@router.post("/reachability/vehicle", response_model=ReachabilitySchema)
def vehicle_reachability(
    req: VehicleReachRequestSchema,
    service: ConnectivityService = Depends(get_connectivity_service),
) -> ReachabilitySchema:
    costs = service.vehicle_costs(
        source=_to_spot(req.source, service),
        mode=TravelMode(req.mode),
        ceiling_s=req.ceiling_s,
    )
    return _costs_to_schema(costs, req.ceiling_s)


@router.post("/reachability/walking", response_model=ReachabilitySchema)
def walking_reachability(
    req: WalkingReachRequestSchema,
    service: ConnectivityService = Depends(get_connectivity_service),
) -> ReachabilitySchema:
    costs = service.walking_costs(sources=req.sources, ceiling_s=req.ceiling_s)
    return _costs_to_schema(costs, req.ceiling_s)


@router.post("/costs/movement", response_model=MovementCostSchema)
def movement_cost(
    req: MovementCostRequestSchema,
    service: ConnectivityService = Depends(get_connectivity_service),
) -> MovementCostSchema:
    cost = service.movement_cost(
        segment_id=req.segment_id,
        to_segment_id=req.to_segment_id,
        mode=TravelMode(req.mode),
    )
    return MovementCostSchema(
        segment_id=req.segment_id,
        to_segment_id=req.to_segment_id,
        mode=req.mode,
        cost_s=cost,
        allowed=cost is not None,
    )


@router.post("/graph/reload", response_model=GraphInfoSchema)
def reload_graph(
    service: ConnectivityService = Depends(get_connectivity_service),
) -> GraphInfoSchema:
    graph = service.reload()
    return GraphInfoSchema(
        nodes=len(graph.nodes),
        segments=len(graph.segments),
        movements=len(graph.movements),
        buildings=len(graph.buildings),
    )
