from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from dam.core.dependencies import (
    check_api_rate_limit,
    get_asset_service,
    get_current_user,
    get_file_storage,
)
from dam.schemas.asset import AssetData
from dam.schemas.response import ApiResponse
from dam.services.asset import AssetService
from dam.services.storage import LocalFileStorage

router = APIRouter(dependencies=[Depends(check_api_rate_limit)])


@router.post("", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
async def create_asset(
    file: UploadFile | None = File(default=None),
    description: str = Form(default=""),
    tags: str = Form(default=""),
    current_user: dict = Depends(get_current_user),
    storage: LocalFileStorage = Depends(get_file_storage),
    asset_service: AssetService = Depends(get_asset_service)
):
    """Upload a file and record it as an asset. ``tags`` is comma-separated."""
    stored_file = await storage.save(file)
    asset = await asset_service.create_asset(
        owner_id=current_user["id"],
        stored_file=stored_file,
        description=description,
        tags=tags
    )
    return ApiResponse(
        success=True,
        message="Asset uploaded successfully",
        data=AssetData(**asset)
    )


@router.get("", response_model=ApiResponse)
async def list_assets(
    current_user: dict = Depends(get_current_user),
    asset_service: AssetService = Depends(get_asset_service)
):
    assets = await asset_service.list_assets(current_user["id"])
    return ApiResponse(
        success=True,
        message="Assets retrieved successfully",
        data=[AssetData(**asset) for asset in assets]
    )


@router.get("/{asset_id}", response_model=ApiResponse)
async def get_asset(
    asset_id: str,
    current_user: dict = Depends(get_current_user),
    asset_service: AssetService = Depends(get_asset_service)
):
    asset = await asset_service.get_asset(asset_id, current_user["id"])
    return ApiResponse(
        success=True,
        message="Asset retrieved successfully",
        data=AssetData(**asset)
    )


@router.delete("/{asset_id}", response_model=ApiResponse)
async def delete_asset(
    asset_id: str,
    current_user: dict = Depends(get_current_user),
    asset_service: AssetService = Depends(get_asset_service)
):
    await asset_service.delete_asset(asset_id, current_user["id"])
    return ApiResponse(success=True, message="Asset deleted successfully")
