import os
import time
from supabase import Client
from kitchen_ops.config import settings
from kitchen_ops.modules.files.schemas import FileResponse, FileScope
from kitchen_ops.modules.files.s3_storage import S3Storage
from kitchen_ops.modules.files.utils import format_file_size
from typing import List, Optional, Dict, Any, Tuple
from fastapi import HTTPException, UploadFile
import logging

logger = logging.getLogger(__name__)

FILE_SELECT = "*, profiles(nome, email)"


def _scope_config(scope: FileScope) -> Dict[str, str]:
    if scope == FileScope.PROJECT:
        return {
            "table": "project_files",
            "column": "project_id",
            "bucket": settings.project_files_bucket,
            "prefix": "projects",
        }
    return {
        "table": "task_files",
        "column": "task_id",
        "bucket": settings.task_files_bucket,
        "prefix": "tasks",
    }


def _to_file(row: Dict[str, Any], scope: FileScope, **extra) -> FileResponse:
    return FileResponse(**{
        **row,
        "tamanho_formatado": format_file_size(row.get("tamanho_bytes") or 0),
        "uploader": row.get("profiles"),
        "scope": scope,
        **extra,
    })


class FileService:
    def __init__(self, supabase: Client, s3_storage: Optional[S3Storage] = None):
        self.supabase = supabase
        self.s3_storage = s3_storage

    # Storage backend

    def _store(self, bucket: str, path: str, content: bytes, content_type: str):
        if self.s3_storage:
            logger.info(f"Uploading to S3: {bucket}/{path}")
            self.s3_storage.upload_file(bucket, path, content, content_type)
        else:
            self.supabase.storage.from_(bucket).upload(
                path,
                content,
                file_options={"content-type": content_type}
            )

    def _fetch(self, bucket: str, path: str) -> bytes:
        if self.s3_storage:
            return self.s3_storage.download_file(bucket, path)
        return self.supabase.storage.from_(bucket).download(path)

    def _discard(self, bucket: str, path: str):
        try:
            if self.s3_storage:
                self.s3_storage.delete_file(bucket, path)
            else:
                self.supabase.storage.from_(bucket).remove([path])
        except Exception as e:
            logger.warning(f"Failed to remove orphan blob {bucket}/{path}: {e}")

    # Operations

    def _validate(self, content: bytes, content_type: Optional[str]):
        if len(content) > settings.max_file_size:
            raise HTTPException(
                status_code=400,
                detail=f"File too large. Maximum size: {format_file_size(settings.max_file_size)}"
            )
        if content_type not in settings.get_allowed_file_types():
            raise HTTPException(status_code=400, detail=f"File type not allowed: {content_type}")

    async def upload_file(self, scope: FileScope, owner_id: str, file: UploadFile, user_id: str) -> FileResponse:
        """Upload to the scope's bucket, then insert the row. The blob is removed if the insert fails."""
        config = _scope_config(scope)
        content = await file.read()
        content_type = file.content_type or "application/octet-stream"
        self._validate(content, content_type)

        extension = os.path.splitext(file.filename or "")[1].lstrip(".").lower() or "bin"
        nome_arquivo = f"{int(time.time() * 1000)}.{extension}"
        file_path = f"{config['prefix']}/{owner_id}/{nome_arquivo}"

        try:
            self._store(config["bucket"], file_path, content, content_type)
        except Exception as e:
            logger.error(f"Storage upload failed: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Failed to upload to storage: {str(e)}")

        try:
            result = self.supabase.table(config["table"]).insert({
                config["column"]: owner_id,
                "nome_arquivo": nome_arquivo,
                "nome_original": file.filename,
                "tipo_arquivo": content_type,
                "tamanho_bytes": len(content),
                "file_path": file_path,
                "uploaded_by": user_id,
                "ativo": True,
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to save file record")
        except Exception as e:
            self._discard(config["bucket"], file_path)
            if isinstance(e, HTTPException):
                raise
            raise HTTPException(status_code=500, detail=f"Failed to save file record: {str(e)}")

        logger.info(f"File {file_path} uploaded by {user_id}")
        return _to_file(result.data[0], scope)

    def list_files(self, scope: FileScope, owner_id: str) -> List[FileResponse]:
        """Active files of a project or task, newest first"""
        config = _scope_config(scope)
        try:
            result = self.supabase.table(config["table"])\
                .select(FILE_SELECT)\
                .eq(config["column"], owner_id)\
                .eq("ativo", True)\
                .order("criado_em", desc=True)\
                .execute()
            return [_to_file(row, scope) for row in result.data or []]
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_project_files_with_tasks(self, project_id: str) -> List[FileResponse]:
        """Project files plus the files of every task in the project"""
        try:
            files = self.list_files(FileScope.PROJECT, project_id)
            tasks = self.supabase.table("tasks")\
                .select("id, titulo")\
                .eq("project_id", project_id)\
                .execute()
            titles = {t["id"]: t.get("titulo") for t in tasks.data or []}
            if titles:
                result = self.supabase.table("task_files")\
                    .select(FILE_SELECT)\
                    .in_("task_id", list(titles.keys()))\
                    .eq("ativo", True)\
                    .execute()
                files.extend(
                    _to_file(row, FileScope.TASK, task_titulo=titles.get(row["task_id"]))
                    for row in result.data or []
                )
            files.sort(key=lambda f: f.criado_em.timestamp() if f.criado_em else 0, reverse=True)
            return files
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_file(self, scope: FileScope, file_id: str) -> Dict[str, Any]:
        config = _scope_config(scope)
        result = self.supabase.table(config["table"])\
            .select("*")\
            .eq("id", file_id)\
            .eq("ativo", True)\
            .maybe_single()\
            .execute()
        if not result or not result.data:
            raise HTTPException(status_code=404, detail="File not found")
        return result.data

    def download_file(self, scope: FileScope, row: Dict[str, Any]) -> Tuple[bytes, Dict[str, Any]]:
        config = _scope_config(scope)
        try:
            return self._fetch(config["bucket"], row["file_path"]), row
        except Exception as e:
            logger.error(f"Download of {row['file_path']} failed: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Failed to download file: {str(e)}")

    def delete_file(self, scope: FileScope, file_id: str) -> bool:
        """Soft delete: the blob stays in storage"""
        config = _scope_config(scope)
        try:
            result = self.supabase.table(config["table"])\
                .update({"ativo": False})\
                .eq("id", file_id)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="File not found")
            logger.info(f"File {file_id} ({scope.value}) deactivated")
            return True
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
