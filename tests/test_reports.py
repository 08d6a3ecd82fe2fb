"""
Document reports: download gate, multi-item create, media streaming and replacement
"""
from datetime import datetime

import pytest

from sinar.core.config import settings
from sinar.integrations.storage_client import StorageException
from sinar.models import ReportType
from sinar.services.report_service import NOT_DOWNLOADED

REPORTS_URL = f"{settings.API_PREFIX}/admin/reports"
BUCKET = settings.MINIO_BUCKET_REPORT
AUDIO = b"ID3" + bytes(997)


def audio_file(name="rekaman.mp3", data=AUDIO):
    return (name, data, "audio/mpeg")


def video_file(name="liputan.mp4", data=b"\x00\x00\x00\x18ftypmp42"):
    return (name, data, "video/mp4")


@pytest.fixture
async def downloaded(factory, kominfo):
    return await factory.document([kominfo], title="Sudah diunduh", is_downloaded=True)


@pytest.fixture
async def audio_report(factory, downloaded, user_a):
    return await factory.report(
        downloaded, user_a, ReportType.AUDIO, content="audio/seed.mp3", data=AUDIO, original_name="rekaman.mp3"
    )


async def test_report_requires_downloaded_document(client, factory, storage, kominfo, user_a_headers):
    doc = await factory.document([kominfo])

    response = await client.post(
        REPORTS_URL,
        headers=user_a_headers,
        data={"document_id": str(doc.id), "text": "Sudah dilaksanakan"},
        files={"audio": audio_file()},
    )

    assert response.status_code == 400
    assert response.json()["message"] == NOT_DOWNLOADED
    assert not any(bucket == BUCKET for bucket, _ in storage.objects)


async def test_report_allowed_after_download(client, factory, kominfo, user_a_headers):
    doc = await factory.document([kominfo])
    await client.get(f"{settings.API_PREFIX}/documents/download/{doc.id}", headers=user_a_headers)

    response = await client.post(
        REPORTS_URL, headers=user_a_headers, data={"document_id": str(doc.id), "text": "Selesai"}
    )

    assert response.status_code == 201


async def test_each_item_becomes_a_report(client, storage, downloaded, user_a, user_a_headers):
    response = await client.post(
        REPORTS_URL,
        headers=user_a_headers,
        data={
            "document_id": str(downloaded.id),
            "description": "Tindak lanjut",
            "text": "  Rapat sudah digelar  ",
            "link": "https://example.org/berita",
        },
        files={"audio": audio_file()},
    )

    assert response.status_code == 201
    reports = response.json()["data"]
    assert [r["type"] for r in reports] == ["TEXT", "LINK", "AUDIO"]
    assert reports[0]["content"] == "Rapat sudah digelar"
    assert reports[1]["content"] == "https://example.org/berita"
    assert {r["description"] for r in reports} == {"Tindak lanjut"}
    assert {r["user_id"] for r in reports} == {user_a.id}
    assert {r["document_id"] for r in reports} == {downloaded.id}

    audio = reports[2]
    assert audio["original_name"] == "rekaman.mp3"
    assert audio["content"].startswith("audio/")
    assert storage.objects[(BUCKET, audio["content"])][0] == AUDIO
    assert audio["preview_url"] == f"http://testserver{REPORTS_URL}/preview/{audio['id']}"
    assert reports[0]["preview_url"] is None


async def test_multiple_media_files(client, storage, downloaded, user_a_headers):
    response = await client.post(
        REPORTS_URL,
        headers=user_a_headers,
        data={"document_id": str(downloaded.id)},
        files=[
            ("audio", audio_file("satu.mp3")),
            ("audio", audio_file("dua.mp3")),
            ("video", video_file()),
        ],
    )

    assert response.status_code == 201
    reports = response.json()["data"]
    assert [(r["type"], r["original_name"]) for r in reports] == [
        ("AUDIO", "satu.mp3"), ("AUDIO", "dua.mp3"), ("VIDEO", "liputan.mp4"),
    ]
    assert reports[2]["content"].startswith("video/")
    assert len([k for k in storage.objects if k[0] == BUCKET]) == 3


async def test_empty_report_is_rejected(client, downloaded, user_a_headers):
    response = await client.post(
        REPORTS_URL, headers=user_a_headers, data={"document_id": str(downloaded.id), "text": "   "}
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Report requires text, a link or at least one media file"


async def test_oversized_audio_stores_nothing(client, storage, monkeypatch, downloaded, user_a_headers, admin_headers):
    monkeypatch.setattr(settings, "MAX_AUDIO_SIZE", 1024 * 1024)

    response = await client.post(
        REPORTS_URL,
        headers=user_a_headers,
        data={"document_id": str(downloaded.id), "text": "Ada lampiran"},
        files=[
            ("audio", audio_file("kecil.mp3")),
            ("audio", audio_file("besar.mp3", b"x" * (1024 * 1024 + 1))),
        ],
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Audio file size exceeds the limit of 1MB"
    assert not any(bucket == BUCKET for bucket, _ in storage.objects)
    listing = await client.get(REPORTS_URL, headers=admin_headers)
    assert listing.json()["total"] == 0


async def test_wrong_media_type_is_rejected(client, downloaded, user_a_headers):
    response = await client.post(
        REPORTS_URL,
        headers=user_a_headers,
        data={"document_id": str(downloaded.id)},
        files={"video": ("klip.avi", b"RIFF", "video/x-msvideo")},
    )
    assert response.status_code == 400
    assert "type not allowed" in response.json()["message"]


async def test_too_many_files(client, monkeypatch, downloaded, user_a_headers):
    monkeypatch.setattr(settings, "MAX_REPORT_FILES", 2)

    response = await client.post(
        REPORTS_URL,
        headers=user_a_headers,
        data={"document_id": str(downloaded.id)},
        files=[("audio", audio_file(f"{i}.mp3")) for i in range(3)],
    )

    assert response.status_code == 400


async def test_failed_upload_removes_already_stored_media(client, storage, monkeypatch, downloaded, user_a_headers):
    original = storage.put_object
    calls = []

    async def flaky_put(bucket, object_name, data, length, content_type="application/octet-stream"):
        calls.append(object_name)
        if len(calls) > 1:
            raise StorageException("connection reset")
        return await original(bucket, object_name, data, length, content_type=content_type)

    monkeypatch.setattr(storage, "put_object", flaky_put)

    response = await client.post(
        REPORTS_URL,
        headers=user_a_headers,
        data={"document_id": str(downloaded.id)},
        files=[("audio", audio_file("satu.mp3")), ("audio", audio_file("dua.mp3"))],
    )

    assert response.status_code == 500
    assert response.json()["message"] == "Failed to upload report media"
    assert (BUCKET, calls[0]) in storage.removed
    assert not any(bucket == BUCKET for bucket, _ in storage.objects)


async def test_report_on_out_of_scope_document(client, factory, kemenkes, user_a_headers):
    doc = await factory.document([kemenkes], is_downloaded=True)

    response = await client.post(
        REPORTS_URL, headers=user_a_headers, data={"document_id": str(doc.id), "text": "Coba"}
    )

    assert response.status_code == 404


async def test_list_is_scoped_through_document(client, factory, downloaded, kemenkes, user_a, user_b, user_a_headers):
    own = await factory.report(downloaded, user_a, content="Milik kominfo")
    foreign_doc = await factory.document([kemenkes], is_downloaded=True)
    await factory.report(foreign_doc, user_b, content="Milik kemenkes")

    body = (await client.get(REPORTS_URL, headers=user_a_headers)).json()

    assert [r["id"] for r in body["data"]] == [own.id]
    assert body["data"][0]["document"]["title"] == "Sudah diunduh"
    assert body["data"][0]["user"] == {"id": user_a.id, "username": "komdigi"}


async def test_list_search_reaches_document_title(client, factory, kominfo, user_a, admin_headers):
    rapat = await factory.document([kominfo], title="Undangan rapat", is_downloaded=True)
    other = await factory.document([kominfo], title="Edaran", is_downloaded=True)
    match = await factory.report(rapat, user_a, content="Hadir")
    await factory.report(other, user_a, content="Hadir juga")

    body = (await client.get(f"{REPORTS_URL}?search=rapat", headers=admin_headers)).json()

    assert [r["id"] for r in body["data"]] == [match.id]


async def test_out_of_scope_report_looks_missing(client, factory, kemenkes, user_b, user_a_headers):
    doc = await factory.document([kemenkes], is_downloaded=True)
    report = await factory.report(doc, user_b, ReportType.AUDIO, content="audio/x.mp3", data=AUDIO)

    for method, path in (
        ("GET", f"/{report.id}"),
        ("GET", f"/download/{report.id}"),
        ("GET", f"/preview/{report.id}"),
        ("DELETE", f"/{report.id}"),
    ):
        response = await client.request(method, f"{REPORTS_URL}{path}", headers=user_a_headers)
        assert response.status_code == 404, path


async def test_reports_of_deleted_document_look_missing(
    client, factory, storage, downloaded, user_a, audio_report, admin_headers, user_a_headers
):
    await factory.report(downloaded, user_a, ReportType.TEXT, content="Catatan")

    deleted = await client.delete(f"{settings.API_PREFIX}/admin/documents/{downloaded.id}", headers=admin_headers)
    assert deleted.status_code == 200

    for headers in (user_a_headers, admin_headers):
        for path in (f"/{audio_report.id}", f"/download/{audio_report.id}", f"/preview/{audio_report.id}"):
            response = await client.get(f"{REPORTS_URL}{path}", headers=headers)
            assert response.status_code == 404, path

        listed = (await client.get(REPORTS_URL, headers=headers)).json()
        grouped = (await client.get(f"{REPORTS_URL}/grouped", headers=headers)).json()
        assert (listed["total"], listed["data"]) == (0, [])
        assert (grouped["total"], grouped["data"]) == (0, [])

    update = await client.put(f"{REPORTS_URL}/{audio_report.id}", headers=user_a_headers, data={"text": "Baru"})
    remove = await client.delete(f"{REPORTS_URL}/{audio_report.id}", headers=user_a_headers)
    assert (update.status_code, remove.status_code) == (404, 404)
    assert (BUCKET, "audio/seed.mp3") in storage.objects


async def test_preview_supports_ranges(client, audio_report, user_a_headers):
    url = f"{REPORTS_URL}/preview/{audio_report.id}"

    partial = await client.get(url, headers={**user_a_headers, "Range": "bytes=0-99"})
    assert partial.status_code == 206
    assert partial.headers["content-range"] == "bytes 0-99/1000"
    assert partial.headers["content-type"] == "audio/mpeg"
    assert partial.content == AUDIO[:100]

    whole = await client.get(url, headers=user_a_headers)
    assert whole.status_code == 200
    assert whole.headers["accept-ranges"] == "bytes"
    assert whole.content == AUDIO

    beyond = await client.get(url, headers={**user_a_headers, "Range": "bytes=2000-2100"})
    assert beyond.status_code == 416
    assert beyond.headers["content-range"] == "bytes */1000"
    assert beyond.content == b""


async def test_preview_with_query_token(client, audio_report, user_a_headers):
    token = user_a_headers["Authorization"].split()[1]
    response = await client.get(f"{REPORTS_URL}/preview/{audio_report.id}", params={"token": token})
    assert response.status_code == 200


async def test_download_flips_report_latch(client, audio_report, user_a_headers):
    response = await client.get(f"{REPORTS_URL}/download/{audio_report.id}", headers=user_a_headers)

    assert response.status_code == 200
    assert response.content == AUDIO
    assert response.headers["content-disposition"] == 'attachment; filename="rekaman.mp3"'
    detail = (await client.get(f"{REPORTS_URL}/{audio_report.id}", headers=user_a_headers)).json()["data"]
    assert detail["is_downloaded"] is True


async def test_text_report_has_no_media(client, factory, downloaded, user_a, user_a_headers):
    report = await factory.report(downloaded, user_a)

    response = await client.get(f"{REPORTS_URL}/download/{report.id}", headers=user_a_headers)

    assert response.status_code == 400
    assert response.json()["message"] == "Report has no media file"


async def test_replacing_audio_removes_old_object(client, storage, audio_report, user_a_headers):
    await client.get(f"{REPORTS_URL}/download/{audio_report.id}", headers=user_a_headers)
    new_audio = b"ID3" + b"\x01" * 50

    response = await client.put(
        f"{REPORTS_URL}/{audio_report.id}",
        headers=user_a_headers,
        files={"audio": audio_file("baru.mp3", new_audio)},
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["type"] == "AUDIO"
    assert data["original_name"] == "baru.mp3"
    assert data["is_downloaded"] is False
    assert data["downloaded_at"] is None
    assert data["content"] != "audio/seed.mp3"
    assert storage.objects[(BUCKET, data["content"])][0] == new_audio
    assert (BUCKET, "audio/seed.mp3") in storage.removed


async def test_switching_media_to_text_removes_object(client, storage, audio_report, user_a_headers):
    response = await client.put(
        f"{REPORTS_URL}/{audio_report.id}", headers=user_a_headers, data={"text": "Diganti teks"}
    )

    data = response.json()["data"]
    assert (data["type"], data["content"], data["original_name"]) == ("TEXT", "Diganti teks", None)
    assert data["download_url"] is None
    assert not storage.has(BUCKET, "audio/seed.mp3")


async def test_update_accepts_only_one_content_source(client, factory, downloaded, user_a, user_a_headers):
    report = await factory.report(downloaded, user_a)

    response = await client.put(
        f"{REPORTS_URL}/{report.id}",
        headers=user_a_headers,
        data={"text": "Baru", "link": "https://example.org"},
    )

    assert response.status_code == 400


async def test_update_description_keeps_content(client, storage, audio_report, user_a_headers):
    response = await client.put(
        f"{REPORTS_URL}/{audio_report.id}", headers=user_a_headers, data={"description": "Catatan"}
    )

    data = response.json()["data"]
    assert data["description"] == "Catatan"
    assert data["content"] == "audio/seed.mp3"
    assert storage.removed == []


async def test_delete_removes_row_and_media(client, storage, audio_report, user_a_headers):
    response = await client.delete(f"{REPORTS_URL}/{audio_report.id}", headers=user_a_headers)

    assert response.status_code == 200
    assert not storage.has(BUCKET, "audio/seed.mp3")
    assert (await client.get(f"{REPORTS_URL}/{audio_report.id}", headers=user_a_headers)).status_code == 404
    assert (await client.delete(f"{REPORTS_URL}/{audio_report.id}", headers=user_a_headers)).status_code == 404


async def test_grouped_by_document_and_type(client, factory, kominfo, kemenkes, user_a, user_b, admin_headers, user_a_headers):
    older = await factory.document([kominfo], title="Lama", is_downloaded=True)
    newer = await factory.document([kominfo], title="Baru", is_downloaded=True)
    foreign = await factory.document([kemenkes], title="Luar", is_downloaded=True)

    await factory.report(older, user_a, ReportType.TEXT, content="t1", created_at=datetime(2025, 1, 5, 8, 0))
    await factory.report(older, user_a, ReportType.LINK, content="https://a", created_at=datetime(2025, 1, 6, 8, 0))
    await factory.report(newer, user_a, ReportType.TEXT, content="t2", created_at=datetime(2025, 3, 1, 8, 0))
    await factory.report(foreign, user_b, ReportType.TEXT, content="t3", created_at=datetime(2025, 2, 1, 8, 0))

    body = (await client.get(f"{REPORTS_URL}/grouped?order=desc", headers=user_a_headers)).json()

    assert body["total"] == 2
    groups = body["data"]
    assert [g["document"]["title"] for g in groups] == ["Baru", "Lama"]
    lama = groups[1]
    assert [r["content"] for r in lama["reports"]["TEXT"]] == ["t1"]
    assert [r["content"] for r in lama["reports"]["LINK"]] == ["https://a"]
    assert lama["reports"]["AUDIO"] == []
    assert lama["reports"]["VIDEO"] == []
    assert lama["latest_update"].startswith("2025-01-06")

    ascending = (await client.get(f"{REPORTS_URL}/grouped?limit=2", headers=admin_headers)).json()
    assert [g["document"]["title"] for g in ascending["data"]] == ["Lama", "Luar"]
    assert ascending["total"] == 3
    assert ascending["hasNext"] is True


async def test_grouped_rejects_unknown_order_by(client, factory, downloaded, user_a, user_a_headers):
    await factory.report(downloaded, user_a, ReportType.TEXT)

    bogus = await client.get(f"{REPORTS_URL}/grouped?orderBy=bogus", headers=user_a_headers)
    by_update = await client.get(f"{REPORTS_URL}/grouped?orderBy=updated_at", headers=user_a_headers)

    assert bogus.status_code == 400
    assert bogus.json()["message"] == "Cannot sort by 'bogus'"
    assert by_update.status_code == 200
    assert by_update.json()["total"] == 1
