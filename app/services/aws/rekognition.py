"""
Rekognition face registry using aioboto3.
"""
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

import aioboto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError

from app.core.config import settings
from app.core.exceptions import FaceRegistryError, NoFaceDetectedError
from app.core.logging import get_logger
from app.domain.interfaces.recognition import FaceRegistry
from app.domain.value_objects.reconciliation import RegistrationResult

logger = get_logger(__name__)


class RekognitionFaceRegistry(FaceRegistry):
    """Registers employee faces in an AWS Rekognition collection."""

    def __init__(
        self,
        collection_id: Optional[str] = None,
        region_name: Optional[str] = None,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None
    ):
        """Store configuration; clients are created per call."""
        self.collection_id = collection_id or settings.REKOGNITION_COLLECTION_ID
        self.region_name = region_name or settings.AWS_REGION
        self.access_key_id = access_key_id or settings.AWS_ACCESS_KEY_ID
        self.secret_access_key = secret_access_key or settings.AWS_SECRET_ACCESS_KEY
        self._client_config = Config(
            connect_timeout=settings.REKOGNITION_CONNECT_TIMEOUT,
            read_timeout=settings.REKOGNITION_READ_TIMEOUT,
            retries={"max_attempts": settings.REKOGNITION_MAX_ATTEMPTS, "mode": "standard"},
        )
        self._session = aioboto3.Session()

    @asynccontextmanager
    async def _get_client(self) -> AsyncGenerator[Any, None]:
        """Async context manager yielding a Rekognition client."""
        client_args: Dict[str, Any] = {
            "region_name": self.region_name or "us-east-1",
            "config": self._client_config,
        }
        if self.access_key_id and self.secret_access_key:
            logger.debug("Using explicit AWS credentials from config for aioboto3")
            client_args["aws_access_key_id"] = self.access_key_id
            client_args["aws_secret_access_key"] = self.secret_access_key
        else:
            logger.debug("Allowing aioboto3 to discover AWS credentials automatically")

        async with self._session.client("rekognition", **client_args) as client:
            yield client

    async def register(
        self,
        image_bytes: bytes,
        external_id: str,
        collection_id: Optional[str] = None,
    ) -> RegistrationResult:
        """
        Index the main face of an image.

        Args:
            image_bytes: Raw image data
            external_id: ExternalImageId stored with the face
            collection_id: Target collection (defaults to the configured one)

        Returns:
            RegistrationResult with the Rekognition FaceId

        Raises:
            NoFaceDetectedError: If Rekognition indexes no face
            FaceRegistryError: If the call fails
        """
        target = collection_id or self.collection_id
        try:
            async with self._get_client() as client:
                response = await client.index_faces(
                    CollectionId=target,
                    Image={"Bytes": image_bytes},
                    ExternalImageId=external_id,
                    DetectionAttributes=["ALL"],
                    QualityFilter="AUTO",
                    MaxFaces=1,
                )
        except NoCredentialsError as e:
            logger.error("AWS credentials not found", external_id=external_id)
            raise FaceRegistryError("AWS credentials not found or configured correctly.") from e
        except (ClientError, BotoCoreError) as e:
            logger.error("Failed to index face", external_id=external_id,
                         collection_id=target, error=str(e))
            raise FaceRegistryError(
                f"Failed to index face '{external_id}': {e}",
                {"external_id": external_id, "collection_id": target}
            ) from e

        records = response.get("FaceRecords") or []
        if not records:
            unindexed = [u.get("Reasons", []) for u in response.get("UnindexedFaces", [])]
            raise NoFaceDetectedError(
                f"No face indexed for '{external_id}'",
                {"external_id": external_id, "unindexed_reasons": unindexed}
            )

        record = records[0]
        face = record.get("Face", {})
        face_id = face.get("FaceId")
        if not face_id:
            raise FaceRegistryError(f"Rekognition returned no FaceId for '{external_id}'")

        logger.info("Indexed face", external_id=external_id, face_id=face_id, collection_id=target)
        return RegistrationResult(
            face_id=face_id,
            confidence=face.get("Confidence"),
            raw_metadata=record,
        )

    async def deregister(self, face_id: str, collection_id: Optional[str] = None) -> None:
        """
        Delete a face from the collection.

        Args:
            face_id: Rekognition FaceId
            collection_id: Collection holding the face (defaults to the configured one)

        Raises:
            FaceRegistryError: If the call fails
        """
        target = collection_id or self.collection_id
        try:
            async with self._get_client() as client:
                response = await client.delete_faces(CollectionId=target, FaceIds=[face_id])
        except (ClientError, BotoCoreError) as e:
            raise FaceRegistryError(
                f"Failed to delete face '{face_id}': {e}",
                {"face_id": face_id, "collection_id": target}
            ) from e

        if face_id in response.get("DeletedFaces", []):
            logger.info("Deleted face", face_id=face_id, collection_id=target)
        else:
            logger.info("Face already absent from collection", face_id=face_id, collection_id=target)
