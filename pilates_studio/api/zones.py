from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from ..mapping import zone_to_read
from ..schemas import ZoneCreate, ZoneRead, ZoneUpdate
from ..services import ZoneService
from .deps import admin_only, any_member, service

router = APIRouter(prefix="/zones", tags=["zones"])


@router.get("", response_model=list[ZoneRead], dependencies=[Depends(any_member)])
def list_zones(
    include_inactive: bool = Query(False),
    zones: ZoneService = Depends(service("ZoneService")),
) -> list[ZoneRead]:
    return [zone_to_read(z) for z in zones.list(active_only=not include_inactive)]


@router.get("/{zone_id}", response_model=ZoneRead, dependencies=[Depends(any_member)])
def get_zone(zone_id: int, zones: ZoneService = Depends(service("ZoneService"))) -> ZoneRead:
    return zone_to_read(zones.get(zone_id))


@router.post("", response_model=ZoneRead, status_code=status.HTTP_201_CREATED, dependencies=[Depends(admin_only)])
def create_zone(payload: ZoneCreate, zones: ZoneService = Depends(service("ZoneService"))) -> ZoneRead:
    return zone_to_read(zones.create(payload))


@router.put("/{zone_id}", response_model=ZoneRead, dependencies=[Depends(admin_only)])
def update_zone(
    zone_id: int,
    payload: ZoneUpdate,
    zones: ZoneService = Depends(service("ZoneService")),
) -> ZoneRead:
    return zone_to_read(zones.update(zone_id, payload))


@router.delete("/{zone_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(admin_only)])
def delete_zone(zone_id: int, zones: ZoneService = Depends(service("ZoneService"))) -> None:
    zones.delete(zone_id)
