from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from sso.api.deps import (
    get_current_identity,
    get_delete_device_use_case,
    get_get_device_use_case,
    get_list_devices_use_case,
    get_rename_device_use_case,
    require_device_rights,
)
from sso.api.schemas.devices import DeviceResponse, UpdateDeviceRequest
from sso.application.dto.auth import RequestIdentity
from sso.application.dto.devices import DeviceOutput
from sso.application.use_cases.manage_devices import (
    DeleteDeviceUseCase,
    GetDeviceUseCase,
    ListDevicesUseCase,
    RenameDeviceUseCase,
)


router = APIRouter()


def _device_response(device: DeviceOutput) -> DeviceResponse:
    return DeviceResponse(
        id=device.id,
        user_id=device.user_id,
        name=device.name,
        device_type=device.device_type,
        os=device.os,
        browser=device.browser,
        ip=device.ip,
        user_agent=device.user_agent,
        last_active=device.last_active,
        created_at=device.created_at,
    )


@router.get("/device", response_model=list[DeviceResponse])
def list_devices(
    identity: RequestIdentity = Depends(get_current_identity),
    use_case: ListDevicesUseCase = Depends(get_list_devices_use_case),
):
    return [_device_response(device) for device in use_case.execute(user_id=identity.user_id)]


@router.get("/device/{device_id}", response_model=DeviceResponse)
def get_device_by_id(
    device_id: str,
    identity: RequestIdentity = Depends(get_current_identity),
    use_case: GetDeviceUseCase = Depends(get_get_device_use_case),
):
    return _device_response(use_case.execute(user_id=identity.user_id, device_id=device_id))


@router.put("/device/{device_id}", response_model=DeviceResponse)
def rename_device(
    device_id: str,
    req: UpdateDeviceRequest,
    _identity: RequestIdentity = Depends(require_device_rights),
    use_case: RenameDeviceUseCase = Depends(get_rename_device_use_case),
):
    return _device_response(use_case.execute(device_id=device_id, name=req.name))


@router.delete("/device/{device_id}", status_code=204)
def delete_device(
    device_id: str,
    _identity: RequestIdentity = Depends(require_device_rights),
    use_case: DeleteDeviceUseCase = Depends(get_delete_device_use_case),
):
    use_case.execute(device_id=device_id)
    return Response(status_code=204)
