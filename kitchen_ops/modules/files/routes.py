from urllib.parse import quote
from fastapi import APIRouter, Depends, UploadFile, File
from fastapi.responses import StreamingResponse
from kitchen_ops.config import settings
from kitchen_ops.database.supabase_client import get_supabase
from kitchen_ops.modules.files.schemas import FileResponse, FileScope, FileDeleteResponse
from kitchen_ops.modules.files.s3_storage import S3Storage
from kitchen_ops.modules.files.service import FileService
from kitchen_ops.core.dependencies import (
    get_current_user_id, get_access_cache, check_project_access, check_task_access
)
from supabase import Client
from typing import List, Dict

router = APIRouter(prefix="/files", tags=["files"])


def get_file_service(supabase: Client = Depends(get_supabase)) -> FileService:
    s3_storage = S3Storage() if settings.s3_configured else None
    return FileService(supabase, s3_storage)


def _check_owner_access(scope: FileScope, owner_id: str, permission: str, user_data: Dict, supabase: Client, cache: Dict):
    if scope == FileScope.PROJECT:
        check_project_access(owner_id, user_data, supabase, permission, cache)
    else:
        check_task_access(owner_id, user_data, supabase, permission, cache)


@router.get("/projects/{project_id}", response_model=List[FileResponse])
async def list_project_files(
    project_id: str,
    user_data: Dict = Depends(get_current_user_id),
    cache: Dict = Depends(get_access_cache),
    service: FileService = Depends(get_file_service),
    supabase: Client = Depends(get_supabase)
):
    check_project_access(project_id, user_data, supabase, "files:read", cache)
    return service.list_files(FileScope.PROJECT, project_id)


@router.get("/projects/{project_id}/all", response_model=List[FileResponse])
async def list_all_project_files(
    project_id: str,
    user_data: Dict = Depends(get_current_user_id),
    cache: Dict = Depends(get_access_cache),
    service: FileService = Depends(get_file_service),
    supabase: Client = Depends(get_supabase)
):
    """Project files together with the files attached to its tasks"""
    check_project_access(project_id, user_data, supabase, "files:read", cache)
    return service.list_project_files_with_tasks(project_id)


@router.post("/projects/{project_id}", response_model=FileResponse, status_code=201)
async def upload_project_file(
    project_id: str,
    file: UploadFile = File(...),
    user_data: Dict = Depends(get_current_user_id),
    cache: Dict = Depends(get_access_cache),
    service: FileService = Depends(get_file_service),
    supabase: Client = Depends(get_supabase)
):
    check_project_access(project_id, user_data, supabase, "files:upload", cache)
    return await service.upload_file(FileScope.PROJECT, project_id, file, user_data["id"])


@router.get("/tasks/{task_id}", response_model=List[FileResponse])
async def list_task_files(
    task_id: str,
    user_data: Dict = Depends(get_current_user_id),
    cache: Dict = Depends(get_access_cache),
    service: FileService = Depends(get_file_service),
    supabase: Client = Depends(get_supabase)
):
    check_task_access(task_id, user_data, supabase, "files:read", cache)
    return service.list_files(FileScope.TASK, task_id)


@router.post("/tasks/{task_id}", response_model=FileResponse, status_code=201)
async def upload_task_file(
    task_id: str,
    file: UploadFile = File(...),
    user_data: Dict = Depends(get_current_user_id),
    cache: Dict = Depends(get_access_cache),
    service: FileService = Depends(get_file_service),
    supabase: Client = Depends(get_supabase)
):
    check_task_access(task_id, user_data, supabase, "files:upload", cache)
    return await service.upload_file(FileScope.TASK, task_id, file, user_data["id"])


@router.get("/{scope}/{file_id}/download")
async def download_file(
    scope: FileScope,
    file_id: str,
    user_data: Dict = Depends(get_current_user_id),
    cache: Dict = Depends(get_access_cache),
    service: FileService = Depends(get_file_service),
    supabase: Client = Depends(get_supabase)
):
    """Stream the file with its original name"""
    row = service.get_file(scope, file_id)
    owner_id = row["project_id"] if scope == FileScope.PROJECT else row["task_id"]
    _check_owner_access(scope, owner_id, "files:read", user_data, supabase, cache)
    content, row = service.download_file(scope, row)
    filename = quote(row.get("nome_original") or row["nome_arquivo"])
    return StreamingResponse(
        iter([content]),
        media_type=row.get("tipo_arquivo") or "application/octet-stream",
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{filename}"}
    )


@router.delete("/{scope}/{file_id}", response_model=FileDeleteResponse)
async def delete_file(
    scope: FileScope,
    file_id: str,
    user_data: Dict = Depends(get_current_user_id),
    cache: Dict = Depends(get_access_cache),
    service: FileService = Depends(get_file_service),
    supabase: Client = Depends(get_supabase)
):
    """Soft delete (the file stops being listed)"""
    row = service.get_file(scope, file_id)
    owner_id = row["project_id"] if scope == FileScope.PROJECT else row["task_id"]
    _check_owner_access(scope, owner_id, "files:delete", user_data, supabase, cache)
    service.delete_file(scope, file_id)
    return FileDeleteResponse(message="File deleted successfully", id=file_id)
