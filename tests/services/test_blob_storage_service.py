"""Tests for the URLs the blob backends hand out."""

import pytest
from botocore.exceptions import ClientError

from src.medrecords.main import app
from src.medrecords.models.enums import TrackedTable
from src.medrecords.services.attachment_service import AttachmentService
from src.medrecords.services.blob_storage_service import S3BlobStorageService, get_blob_storage_service


class FakeS3Client:
    """In-memory stand-in for the aioboto3 S3 client."""

    def __init__(self):
        self.objects: dict[str, bytes] = {}
        self.signed = 0

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    async def put_object(self, *, Bucket, Key, Body, **kwargs):
        self.objects[Key] = Body

    async def head_object(self, *, Bucket, Key):
        if Key not in self.objects:
            raise ClientError({"Error": {"Code": "404"}}, "HeadObject")
        return {}

    async def delete_object(self, *, Bucket, Key):
        self.objects.pop(Key, None)

    async def generate_presigned_url(self, operation, Params, ExpiresIn):
        self.signed += 1
        return f"https://signed.example/{Params['Key']}?expires={ExpiresIn}&n={self.signed}"


class FakeS3Session:
    def __init__(self, s3_client: FakeS3Client):
        self.s3_client = s3_client

    def client(self, service_name: str) -> FakeS3Client:
        return self.s3_client


@pytest.fixture
def s3_client() -> FakeS3Client:
    return FakeS3Client()


def make_s3_store(s3_client: FakeS3Client, use_signed_urls: bool) -> S3BlobStorageService:
    store = S3BlobStorageService(
        bucket_name="clinic-records",
        access_key_id="test-key",
        secret_access_key="test-secret",
        region="eu-west-1",
        use_signed_urls=use_signed_urls,
        signed_url_expiry=60,
        base_url="/api/v1/blobs/",
    )
    store.session = FakeS3Session(s3_client)
    return store


def test_local_record_url(blob_store):
    assert blob_store.record_url("doctor-images", "a.png") == "/api/v1/blobs/doctor-images/a.png"


def test_s3_record_url_without_signing(s3_client):
    store = make_s3_store(s3_client, use_signed_urls=False)

    assert store.record_url("doctor-images", "a.png") == (
        "https://clinic-records.s3.eu-west-1.amazonaws.com/medrecords/doctor-images/a.png"
    )


@pytest.mark.asyncio
async def test_signed_upload_stores_stable_url(s3_client):
    store = make_s3_store(s3_client, use_signed_urls=True)

    upload = await store.upload("patient-reports", b"scan", "scan.png")

    assert upload.url == f"/api/v1/blobs/patient-reports/{upload.path}"
    assert s3_client.signed == 0
    assert f"medrecords/patient-reports/{upload.path}" in s3_client.objects


@pytest.mark.asyncio
async def test_signed_url_is_fresh_on_each_request(s3_client):
    store = make_s3_store(s3_client, use_signed_urls=True)
    upload = await store.upload("doctor-images", b"img", "photo.png")

    first = await store.get_public_url("doctor-images", upload.path)
    second = await store.get_public_url("doctor-images", upload.path)

    assert first != second
    assert "expires=60" in first


@pytest.mark.asyncio
async def test_replace_with_signed_backend_keeps_row_url_stable(
    db_session, s3_client, settings, make_patient, staff_session, png_bytes
):
    store = make_s3_store(s3_client, use_signed_urls=True)
    attachments = AttachmentService(db_session, store, settings)
    patient = await make_patient()

    updated = await attachments.replace(TrackedTable.PATIENTS, patient.id, "scan.png", png_bytes, staff_session)

    assert updated.report_image_url == f"/api/v1/blobs/{settings.PATIENT_REPORTS_BUCKET}/{updated.report_image_path}"
    assert s3_client.signed == 0


@pytest.mark.asyncio
async def test_blob_route_redirects_to_fresh_signed_url(client, s3_client, settings, png_bytes):
    store = make_s3_store(s3_client, use_signed_urls=True)
    app.dependency_overrides[get_blob_storage_service] = lambda: store
    upload = await store.upload(settings.DOCTOR_IMAGES_BUCKET, png_bytes, "photo.png")

    response = await client.get(upload.url)

    assert response.status_code == 307
    assert response.headers["location"].startswith("https://signed.example/")
    assert s3_client.signed == 1
