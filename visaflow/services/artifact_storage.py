"""Artifact Storage - Save uploaded step files to disk"""
import os
from typing import List, Optional, Tuple
from fastapi import UploadFile
from pydantic import BaseModel

from ..domain.errors import ArtifactTooLargeError, InvalidMimeTypeError, ValidationError
from ..config.settings import settings
from ..utils.idgen import generate_artifact_id
from ..utils.logger import get_logger

logger = get_logger(__name__)


class StoredArtifact(BaseModel):
    """A file written by the storage collaborator"""
    artifact_id: str
    original_filename: str
    mime_type: str
    size_bytes: int
    storage_path: str  # Relative to the uploads base path; used as the artifact reference


class ArtifactStorage:
    """
    Local-disk storage for step artifacts
    
    Files land in <base_path>/<owner>/<sequence>/ and are referenced by
    their path relative to base_path. Only path bookkeeping is handled here;
    serving files back is out of scope.
    """
    
    def __init__(
        self,
        base_path: Optional[str] = None,
        max_bytes: Optional[int] = None,
        allowed_mime_types: Optional[List[str]] = None
    ):
        self.base_path = base_path or settings.uploads_base_path
        self.max_bytes = max_bytes or settings.uploads_max_bytes
        self.allowed_mime_types = allowed_mime_types or settings.allowed_mime_types_list
        self._ensure_storage_dir()
    
    def _ensure_storage_dir(self):
        """Ensure storage directory exists"""
        os.makedirs(self.base_path, exist_ok=True)
    
    async def store_files(
        self,
        owner_id: str,
        sequence: int,
        files: List[UploadFile]
    ) -> List[StoredArtifact]:
        """
        Validate and write a batch of uploads
        
        The batch is validated completely before anything is written, and a
        failure while writing removes the files already stored.
        """
        if not files:
            raise ValidationError("At least one file is required")
        
        payloads: List[Tuple[UploadFile, bytes, str]] = []
        for file in files:
            content_type = file.content_type or "application/octet-stream"
            if not self.is_allowed_mime_type(content_type):
                raise InvalidMimeTypeError(
                    f"File type {content_type} is not allowed",
                    details={
                        "filename": file.filename,
                        "mime_type": content_type,
                        "allowed": self.allowed_mime_types
                    }
                )
            
            content = await file.read()
            if len(content) > self.max_bytes:
                raise ArtifactTooLargeError(
                    f"File {file.filename} exceeds maximum size of {self.max_bytes // (1024 * 1024)}MB",
                    details={
                        "filename": file.filename,
                        "size_bytes": len(content),
                        "max_bytes": self.max_bytes
                    }
                )
            payloads.append((file, content, content_type))
        
        relative_dir = os.path.join(self._sanitize_filename(owner_id), str(sequence))
        storage_dir = os.path.join(self.base_path, relative_dir)
        os.makedirs(storage_dir, exist_ok=True)
        
        stored: List[StoredArtifact] = []
        try:
            for file, content, content_type in payloads:
                artifact_id = generate_artifact_id()
                original_filename = file.filename or "unnamed"
                stored_filename = f"{artifact_id}_{self._sanitize_filename(original_filename)}"
                
                with open(os.path.join(storage_dir, stored_filename), "wb") as f:
                    f.write(content)
                
                stored.append(StoredArtifact(
                    artifact_id=artifact_id,
                    original_filename=original_filename,
                    mime_type=content_type,
                    size_bytes=len(content),
                    storage_path=os.path.join(relative_dir, stored_filename).replace(os.sep, "/")
                ))
        except OSError as e:
            logger.error(f"Failed to store artifacts for owner {owner_id}: {e}", extra={"owner_id": owner_id})
            self.discard(stored)
            raise
        
        logger.info(
            f"Stored {len(stored)} artifacts for owner {owner_id}",
            extra={"owner_id": owner_id, "step_sequence": sequence, "artifact_count": len(stored)}
        )
        return stored
    
    def discard(self, stored: List[StoredArtifact]) -> None:
        """Remove files written by store_files"""
        for artifact in stored:
            path = self.absolute_path(artifact.storage_path)
            if os.path.exists(path):
                os.remove(path)
        if stored:
            logger.info(f"Discarded {len(stored)} stored artifacts")
    
    def absolute_path(self, storage_path: str) -> str:
        return os.path.join(self.base_path, *storage_path.split("/"))
    
    def is_allowed_mime_type(self, content_type: str) -> bool:
        """Check a content type against the allow-list (supports type/* entries)"""
        for allowed in self.allowed_mime_types:
            if allowed.endswith("/*"):
                if content_type.startswith(allowed[:-1]):
                    return True
            elif content_type == allowed:
                return True
        return False
    
    def _sanitize_filename(self, filename: str) -> str:
        """Sanitize a name for use as a path segment"""
        safe = filename.replace("/", "_").replace("\\", "_").replace("..", "_")
        if len(safe) > 100:
            name, ext = os.path.splitext(safe)
            safe = name[:96] + ext
        return safe
