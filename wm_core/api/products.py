"""
商品与分类 API 路由
"""
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from wm_core.services.catalog import CatalogService
from .deps import get_current_user_id, get_catalog_service
from .models import (
    ApiResponse, PagedResponse,
    ProductRequest, UpdateProductRequest, ProductOut,
    CategoryRequest, UpdateCategoryRequest, CategoryOut
)

router = APIRouter()


# ========== 分类（需在 /{product_id} 之前注册） ==========

@router.get("/categories", response_model=ApiResponse[List[CategoryOut]])
async def list_categories(service: CatalogService = Depends(get_catalog_service)):
    return ApiResponse.success(await service.list_categories())


@router.get("/categories/{category_id}", response_model=ApiResponse[CategoryOut])
async def get_category(category_id: int, service: CatalogService = Depends(get_catalog_service)):
    return ApiResponse.success(await service.get_category(category_id))


@router.post("/categories", response_model=ApiResponse[CategoryOut], dependencies=[Depends(get_current_user_id)])
async def create_category(body: CategoryRequest, service: CatalogService = Depends(get_catalog_service)):
    return ApiResponse.success(await service.create_category(body.model_dump()), message="分类创建成功")


@router.put("/categories/{category_id}", response_model=ApiResponse[CategoryOut], dependencies=[Depends(get_current_user_id)])
async def update_category(
    category_id: int,
    body: UpdateCategoryRequest,
    service: CatalogService = Depends(get_catalog_service),
):
    data = body.model_dump(exclude_unset=True)
    return ApiResponse.success(await service.update_category(category_id, data), message="分类更新成功")


@router.delete("/categories/{category_id}", response_model=ApiResponse[None], dependencies=[Depends(get_current_user_id)])
async def delete_category(category_id: int, service: CatalogService = Depends(get_catalog_service)):
    await service.delete_category(category_id)
    return ApiResponse.success(message="分类删除成功")


# ========== 商品 ==========

@router.get("", response_model=ApiResponse[PagedResponse[ProductOut]])
async def list_products(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100, alias="pageSize"),
    category_id: Optional[int] = Query(None, alias="categoryId"),
    keyword: Optional[str] = Query(None, max_length=100),
    min_price: Optional[Decimal] = Query(None, ge=0, alias="minPrice"),
    max_price: Optional[Decimal] = Query(None, ge=0, alias="maxPrice"),
    is_recommended: Optional[bool] = Query(None, alias="isRecommended"),
    is_new: Optional[bool] = Query(None, alias="isNew"),
    is_hot: Optional[bool] = Query(None, alias="isHot"),
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    service: CatalogService = Depends(get_catalog_service),
):
    """商品列表"""
    result = await service.list_products(
        category_id=category_id,
        keyword=keyword,
        min_price=min_price,
        max_price=max_price,
        is_recommended=is_recommended,
        is_new=is_new,
        is_hot=is_hot,
        sort_by=sort_by,
        page=page,
        page_size=page_size,
    )
    return ApiResponse.success(result)


@router.get("/{product_id}", response_model=ApiResponse[ProductOut])
async def get_product(product_id: int, service: CatalogService = Depends(get_catalog_service)):
    return ApiResponse.success(await service.get_product(product_id))


@router.post("", response_model=ApiResponse[ProductOut], dependencies=[Depends(get_current_user_id)])
async def create_product(body: ProductRequest, service: CatalogService = Depends(get_catalog_service)):
    return ApiResponse.success(await service.create_product(body.model_dump()), message="商品创建成功")


@router.put("/{product_id}", response_model=ApiResponse[ProductOut], dependencies=[Depends(get_current_user_id)])
async def update_product(
    product_id: int,
    body: UpdateProductRequest,
    service: CatalogService = Depends(get_catalog_service),
):
    data = body.model_dump(exclude_unset=True)
    return ApiResponse.success(await service.update_product(product_id, data), message="商品更新成功")


@router.delete("/{product_id}", response_model=ApiResponse[None], dependencies=[Depends(get_current_user_id)])
async def delete_product(product_id: int, service: CatalogService = Depends(get_catalog_service)):
    await service.delete_product(product_id)
    return ApiResponse.success(message="商品删除成功")
