"""
用户 API 路由：登录、资料、收货地址
"""
from typing import List

from fastapi import APIRouter, Depends

from wm_core.services.addresses import AddressService
from wm_core.services.auth_service import AuthService
from .deps import get_current_user_id, get_auth_service, get_address_service
from .models import (
    ApiResponse, LoginRequest, LoginOut, UserOut, UpdateProfileRequest,
    AddressRequest, UpdateAddressRequest, SetDefaultAddressRequest, AddressOut
)

router = APIRouter()


@router.post("/login", response_model=ApiResponse[LoginOut])
async def login(body: LoginRequest, service: AuthService = Depends(get_auth_service)):
    """小程序登录"""
    profile = body.model_dump(exclude={"code"}, exclude_none=True)
    return ApiResponse.success(await service.login(body.code, profile), message="登录成功")


@router.get("/profile", response_model=ApiResponse[UserOut])
async def get_profile(
    user_id: int = Depends(get_current_user_id),
    service: AuthService = Depends(get_auth_service),
):
    return ApiResponse.success(await service.get_profile(user_id))


@router.put("/profile", response_model=ApiResponse[UserOut])
async def update_profile(
    body: UpdateProfileRequest,
    user_id: int = Depends(get_current_user_id),
    service: AuthService = Depends(get_auth_service),
):
    user = await service.update_profile(user_id, body.model_dump(exclude_unset=True))
    return ApiResponse.success(user, message="更新成功")


# ========== 收货地址 ==========

@router.get("/addresses", response_model=ApiResponse[List[AddressOut]])
async def list_addresses(
    user_id: int = Depends(get_current_user_id),
    service: AddressService = Depends(get_address_service),
):
    return ApiResponse.success(await service.list_addresses(user_id))


@router.post("/addresses", response_model=ApiResponse[AddressOut])
async def create_address(
    body: AddressRequest,
    user_id: int = Depends(get_current_user_id),
    service: AddressService = Depends(get_address_service),
):
    return ApiResponse.success(await service.create_address(user_id, body.model_dump()), message="地址添加成功")


@router.post("/addresses/set-default", response_model=ApiResponse[AddressOut])
async def set_default_address(
    body: SetDefaultAddressRequest,
    user_id: int = Depends(get_current_user_id),
    service: AddressService = Depends(get_address_service),
):
    return ApiResponse.success(await service.set_default(user_id, body.address_id), message="默认地址设置成功")


@router.put("/addresses/{address_id}", response_model=ApiResponse[AddressOut])
async def update_address(
    address_id: int,
    body: UpdateAddressRequest,
    user_id: int = Depends(get_current_user_id),
    service: AddressService = Depends(get_address_service),
):
    data = body.model_dump(exclude_unset=True)
    return ApiResponse.success(await service.update_address(user_id, address_id, data), message="地址更新成功")


@router.delete("/addresses/{address_id}", response_model=ApiResponse[None])
async def delete_address(
    address_id: int,
    user_id: int = Depends(get_current_user_id),
    service: AddressService = Depends(get_address_service),
):
    await service.delete_address(user_id, address_id)
    return ApiResponse.success(message="地址删除成功")
