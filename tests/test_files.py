"""
Tests for project and task attachments.
"""

import pytest

from kitchen_ops.config import settings
from kitchen_ops.modules.files.utils import format_file_size

from tests.conftest import API, AUX_ID, NUTRI_ID, OUTSIDER_ID, PROJECT_ID, TASK_ID, login_as

PDF = ("cardapio.pdf", b"%PDF-1.4 menu", "application/pdf")


def _project_file(db, **overrides):
    row = {
        "project_id": PROJECT_ID, "nome_arquivo": "1700000000000.pdf", "nome_original": "cardápio.pdf",
        "tipo_arquivo": "application/pdf", "tamanho_bytes": 13, "file_path": "projects/project-1/1700000000000.pdf",
        "uploaded_by": NUTRI_ID, "ativo": True, "criado_em": "2026-03-01T10:00:00+00:00",
    }
    row.update(overrides)
    return db.add("project_files", **row)


class TestFormatFileSize:
    @pytest.mark.parametrize("size, expected", [
        (0, "0 Bytes"),
        (None, "0 Bytes"),
        (512, "512 Bytes"),
        (1536, "1.5 KB"),
        (10 * 1024 * 1024, "10 MB"),
        (1288490189, "1.2 GB"),
    ])
    def test_format_file_size(self, size, expected):
        assert format_file_size(size) == expected


class TestUpload:
    def test_upload_project_file(self, client, db, current_user):
        login_as(current_user, AUX_ID)
        response = client.post(f"{API}/files/projects/{PROJECT_ID}", files={"file": PDF})

        assert response.status_code == 201
        body = response.json()
        assert body["nome_original"] == "cardapio.pdf"
        assert body["tamanho_formatado"] == "13 Bytes"
        assert body["file_path"].startswith(f"projects/{PROJECT_ID}/")
        assert body["file_path"].endswith(".pdf")
        assert db.storage.buckets["project-files"][body["file_path"]] == b"%PDF-1.4 menu"
        assert db.rows("project_files")[0]["uploaded_by"] == AUX_ID

    def test_upload_task_file(self, client, db):
        response = client.post(
            f"{API}/files/tasks/{TASK_ID}", files={"file": ("foto.png", b"\x89PNG", "image/png")}
        )
        assert response.status_code == 201
        assert response.json()["scope"] == "task"
        assert list(db.storage.buckets["task-files"]) == [response.json()["file_path"]]

    def test_too_large(self, client, monkeypatch):
        monkeypatch.setattr(settings, "max_file_size", 4)
        response = client.post(f"{API}/files/projects/{PROJECT_ID}", files={"file": PDF})
        assert response.status_code == 400
        assert response.json()["detail"] == "File too large. Maximum size: 4 Bytes"

    def test_type_not_allowed(self, client, db):
        response = client.post(
            f"{API}/files/projects/{PROJECT_ID}", files={"file": ("run.sh", b"echo", "text/x-shellscript")}
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "File type not allowed: text/x-shellscript"
        assert db.storage.buckets == {}

    def test_failed_insert_discards_blob(self, client, db):
        db.errors[("project_files", "insert")] = Exception("constraint violated")
        response = client.post(f"{API}/files/projects/{PROJECT_ID}", files={"file": PDF})
        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to save file record: constraint violated"
        assert db.storage.buckets["project-files"] == {}

    def test_outsider_cannot_upload(self, client, current_user):
        login_as(current_user, OUTSIDER_ID)
        response = client.post(f"{API}/files/projects/{PROJECT_ID}", files={"file": PDF})
        assert response.status_code == 403


class TestListAndDownload:
    def test_list_hides_deleted(self, client, db):
        _project_file(db, id="f1")
        _project_file(db, id="f2", ativo=False)
        body = client.get(f"{API}/files/projects/{PROJECT_ID}").json()
        assert [f["id"] for f in body] == ["f1"]

    def test_all_includes_task_files(self, client, db):
        _project_file(db, id="f1")
        db.add("task_files", id="t1", task_id=TASK_ID, nome_arquivo="1.png", nome_original="foto.png",
               tipo_arquivo="image/png", tamanho_bytes=2048, file_path="tasks/task-1/1.png", ativo=True,
               criado_em="2026-03-02T10:00:00+00:00")

        body = client.get(f"{API}/files/projects/{PROJECT_ID}/all").json()

        assert [f["id"] for f in body] == ["t1", "f1"]
        assert body[0]["task_titulo"] == "Revisar fichas técnicas"
        assert body[0]["tamanho_formatado"] == "2 KB"

    def test_download(self, client, db):
        row = _project_file(db, id="f1")
        db.storage.buckets["project-files"] = {row["file_path"]: b"%PDF-1.4 menu"}

        response = client.get(f"{API}/files/project/f1/download")

        assert response.status_code == 200
        assert response.content == b"%PDF-1.4 menu"
        assert response.headers["content-type"] == "application/pdf"
        assert response.headers["content-disposition"] == "attachment; filename*=UTF-8''card%C3%A1pio.pdf"

    def test_download_missing_blob(self, client, db):
        _project_file(db, id="f1")
        assert client.get(f"{API}/files/project/f1/download").status_code == 500

    def test_download_unknown_file(self, client):
        assert client.get(f"{API}/files/task/nope/download").status_code == 404


class TestDelete:
    def test_soft_delete(self, client, db):
        _project_file(db, id="f1")
        response = client.delete(f"{API}/files/project/f1")
        assert response.json() == {"message": "File deleted successfully", "id": "f1"}
        assert db.rows("project_files")[0]["ativo"] is False

    def test_nutricionista_cannot_delete(self, client, db, current_user):
        _project_file(db, id="f1")
        login_as(current_user, NUTRI_ID)
        response = client.delete(f"{API}/files/project/f1")
        assert response.status_code == 403
        assert response.json()["detail"] == "Insufficient permissions. Required: files:delete"

    def test_delete_twice(self, client, db):
        _project_file(db, id="f1")
        client.delete(f"{API}/files/project/f1")
        assert client.delete(f"{API}/files/project/f1").status_code == 404
