"""Tests for the Rekognition face registry."""
from contextlib import asynccontextmanager

import pytest
from botocore.exceptions import ClientError, NoCredentialsError

from app.core.exceptions import FaceRegistryError, NoFaceDetectedError
from app.services.aws.rekognition import RekognitionFaceRegistry


class StubRekognitionClient:
    def __init__(self, index_response=None, delete_response=None, error=None):
        self.index_response = index_response or {}
        self.delete_response = delete_response or {}
        self.error = error
        self.calls = []

    async def index_faces(self, **kwargs):
        self.calls.append(("index_faces", kwargs))
        if self.error:
            raise self.error
        return self.index_response

    async def delete_faces(self, **kwargs):
        self.calls.append(("delete_faces", kwargs))
        if self.error:
            raise self.error
        return self.delete_response


class StubSession:
    """Stands in for aioboto3.Session."""

    def __init__(self, client):
        self._client = client
        self.client_args = []

    @asynccontextmanager
    async def client(self, service_name, **kwargs):
        self.client_args.append((service_name, kwargs))
        yield self._client


def client_error(code="InvalidParameterException"):
    return ClientError({"Error": {"Code": code, "Message": "bad request"}}, "IndexFaces")


@pytest.fixture
def make_registry():
    def _make(client):
        registry = RekognitionFaceRegistry(
            collection_id="employees",
            region_name="us-east-1",
            access_key_id="key",
            secret_access_key="secret",
        )
        registry._session = StubSession(client)
        return registry
    return _make


class TestRegister:

    async def test_indexes_single_face(self, make_registry):
        record = {"Face": {"FaceId": "abc-123", "Confidence": 99.9}, "FaceDetail": {}}
        client = StubRekognitionClient(index_response={"FaceRecords": [record]})
        registry = make_registry(client)

        result = await registry.register(b"jpeg", "employee_001")

        assert result.face_id == "abc-123"
        assert result.confidence == 99.9
        assert result.raw_metadata == record
        _, kwargs = client.calls[0]
        assert kwargs["CollectionId"] == "employees"
        assert kwargs["ExternalImageId"] == "employee_001"
        assert kwargs["Image"] == {"Bytes": b"jpeg"}
        assert kwargs["MaxFaces"] == 1

        service_name, client_args = registry._session.client_args[0]
        assert service_name == "rekognition"
        assert client_args["aws_access_key_id"] == "key"

    async def test_explicit_collection_wins(self, make_registry):
        client = StubRekognitionClient(index_response={"FaceRecords": [{"Face": {"FaceId": "f"}}]})
        registry = make_registry(client)

        await registry.register(b"jpeg", "employee_001", collection_id="contractors")

        assert client.calls[0][1]["CollectionId"] == "contractors"

    async def test_no_face_detected(self, make_registry):
        response = {"FaceRecords": [], "UnindexedFaces": [{"Reasons": ["LOW_BRIGHTNESS"]}]}
        registry = make_registry(StubRekognitionClient(index_response=response))

        with pytest.raises(NoFaceDetectedError) as exc_info:
            await registry.register(b"jpeg", "employee_002")
        assert exc_info.value.details["unindexed_reasons"] == [["LOW_BRIGHTNESS"]]

    async def test_client_error_is_wrapped(self, make_registry):
        registry = make_registry(StubRekognitionClient(error=client_error()))

        with pytest.raises(FaceRegistryError) as exc_info:
            await registry.register(b"jpeg", "employee_003")
        assert exc_info.value.details["external_id"] == "employee_003"

    async def test_missing_credentials_are_wrapped(self, make_registry):
        registry = make_registry(StubRekognitionClient(error=NoCredentialsError()))

        with pytest.raises(FaceRegistryError, match="credentials"):
            await registry.register(b"jpeg", "employee_004")


class TestDeregister:

    async def test_deletes_face(self, make_registry):
        client = StubRekognitionClient(delete_response={"DeletedFaces": ["abc-123"]})
        registry = make_registry(client)

        await registry.deregister("abc-123")

        assert client.calls == [
            ("delete_faces", {"CollectionId": "employees", "FaceIds": ["abc-123"]})
        ]

    async def test_absent_face_is_not_an_error(self, make_registry):
        registry = make_registry(StubRekognitionClient(delete_response={"DeletedFaces": []}))
        await registry.deregister("gone")

    async def test_client_error_is_wrapped(self, make_registry):
        registry = make_registry(StubRekognitionClient(error=client_error("ThrottlingException")))

        with pytest.raises(FaceRegistryError):
            await registry.deregister("abc-123", "employees")
