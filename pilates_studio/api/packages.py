from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from ..billing import PackageService
from ..mapping import package_to_read
from ..schemas import PackageCreate, PackageRead, PackageUpdate
from .deps import admin_only, any_member, service

router = APIRouter(prefix="/packages", tags=["packages"])


@router.get("", response_model=list[PackageRead], dependencies=[Depends(any_member)])
def list_packages(
    active_only: bool = Query(True),
    packages: PackageService = Depends(service("PackageService")),
) -> list[PackageRead]:
    return [package_to_read(p) for p in packages.list(active_only=active_only)]


@router.get("/{package_id}", response_model=PackageRead, dependencies=[Depends(any_member)])
def get_package(package_id: int, packages: PackageService = Depends(service("PackageService"))) -> PackageRead:
    return package_to_read(packages.get(package_id))


@router.post("", response_model=PackageRead, status_code=status.HTTP_201_CREATED, dependencies=[Depends(admin_only)])
def create_package(payload: PackageCreate, packages: PackageService = Depends(service("PackageService"))) -> PackageRead:
    return package_to_read(packages.create(payload))


@router.put("/{package_id}", response_model=PackageRead, dependencies=[Depends(admin_only)])
def update_package(
    package_id: int,
    payload: PackageUpdate,
    packages: PackageService = Depends(service("PackageService")),
) -> PackageRead:
    return package_to_read(packages.update(package_id, payload))


@router.delete("/{package_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(admin_only)])
def delete_package(package_id: int, packages: PackageService = Depends(service("PackageService"))) -> None:
    packages.delete(package_id)
