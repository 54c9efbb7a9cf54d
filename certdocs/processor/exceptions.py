class CertificationError(Exception):
    """Base exception for all pipeline errors that reach the boundary.

    Every subclass carries a stable machine-readable ``code``. ``retryable``
    tells the job runner whether another attempt can succeed.
    """

    code: str = "CERTIFICATION_FAILED"
    retryable: bool = True

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code

    @property
    def message(self) -> str:
        return str(self)


class RequestValidationError(CertificationError):
    """Raised when a request is rejected before any rendering or storage work."""

    code = "INVALID_REQUEST"
    retryable = False


class IssuerNotFoundError(CertificationError):
    """Raised when the issuing entity does not exist."""

    code = "ISSUER_NOT_FOUND"
    retryable = False


class DocumentNotFoundError(CertificationError):
    """Raised when a registry row cannot be found."""

    code = "DOCUMENT_NOT_FOUND"
    retryable = False


class UploadFailedError(CertificationError):
    """Raised when the rendered artifact cannot be written to storage."""

    code = "UPLOAD_FAILED"


class RegistryError(CertificationError):
    """Base class for registry failures; the blob may already be stored."""

    code = "DOCUMENT_UPSERT_FAILED"


class RegistryLookupError(RegistryError):
    """Raised when looking up an existing registry row fails."""

    code = "DOCUMENT_LOOKUP_FAILED"


class RegistryUpdateError(RegistryError):
    """Raised when updating an existing registry row fails."""

    code = "DOCUMENT_UPDATE_FAILED"


class RegistryInsertError(RegistryError):
    """Raised when inserting a new registry row fails."""

    code = "DOCUMENT_INSERT_FAILED"


class RegistryUpsertError(RegistryError):
    """Raised when the content-hash keyed upsert fails."""

    code = "DOCUMENT_UPSERT_FAILED"


class ArtifactNotFoundError(CertificationError):
    """Raised when no artifact could be resolved for an entry."""

    code = "ARTIFACT_NOT_FOUND"
    retryable = False

    def __init__(self, message: str, *, bucket: str = "", path: str = "") -> None:
        super().__init__(message)
        self.bucket = bucket
        self.path = path


class SigningError(CertificationError):
    """Raised when a signed link cannot be issued."""

    code = "SIGNING_FAILED"


class DownloadFailedError(CertificationError):
    """Raised when stored artifact bytes cannot be read back."""

    code = "DOWNLOAD_FAILED"
