"""External boundary: structured responses in, structured responses out.

Every public call returns ``{"ok": True, ...}`` or
``{"ok": False, "error": <code>, "message": <detail>}``; no exception
crosses this layer.
"""

from collections.abc import Callable, Mapping
from typing import Any

from certdocs.billing.requests import (
    parse_certify_request,
    parse_download_request,
    parse_generate_request,
    parse_resolve_request,
)
from certdocs.billing.totals import TotalsNormalizer
from certdocs.config.settings import Settings
from certdocs.database.repositories.issuer_repository import IssuerRepository
from certdocs.database.repositories.registry_repository import RegistryRepository
from certdocs.database.repositories.verified_documents_repository import (
    VerifiedDocumentsRepository,
)
from certdocs.logging.logger import Log
from certdocs.pdf.factory import PdfReaderFactory
from certdocs.processor.certifier import DocumentCertifier
from certdocs.processor.exceptions import CertificationError, RequestValidationError
from certdocs.processor.generator import DocumentGenerator, build_generation_steps
from certdocs.processor.verifier import DocumentVerifier
from certdocs.rendering.qr import SymbolRasterizer
from certdocs.rendering.renderer import DocumentRenderer
from certdocs.rendering.stabilizer import HashStabilizer
from certdocs.resolution.download import VerifiedArtifactDownloader
from certdocs.resolution.entries import DocumentEntryLoader
from certdocs.resolution.fallback import FallbackLocator
from certdocs.resolution.resolver import ArtifactResolver
from certdocs.resolution.session import ResolutionSession
from certdocs.storage.base import BaseStorageClient
from certdocs.storage.factory import StorageClientFactory
from certdocs.storage.models import Lane
from certdocs.storage.writer import ContentAddressedStoreWriter

Response = dict[str, Any]


def error_response(exc: CertificationError) -> Response:
    return {"ok": False, "error": exc.code, "message": exc.message}


class DocumentHandlers:
    """Entry points for generate, certify, resolve, verify and download calls."""

    def __init__(
        self,
        generator: DocumentGenerator,
        certifier: DocumentCertifier,
        verifier: DocumentVerifier,
        resolver: ArtifactResolver,
        loader: DocumentEntryLoader,
        downloader: VerifiedArtifactDownloader,
        settings: Settings,
    ) -> None:
        self._generator = generator
        self._certifier = certifier
        self._verifier = verifier
        self._resolver = resolver
        self._loader = loader
        self._downloader = downloader
        self._settings = settings

    def generate(self, payload: Mapping[str, Any]) -> Response:
        return self._guard("generate", lambda: self.perform_generate(payload))

    def certify(self, payload: Mapping[str, Any]) -> Response:
        return self._guard("certify", lambda: self.perform_certify(payload))

    def resolve(self, payload: Mapping[str, Any]) -> Response:
        return self._guard("resolve", lambda: self.perform_resolve(payload))

    def verify(self, pdf_bytes: bytes) -> Response:
        return self._guard("verify", lambda: self.perform_verify(pdf_bytes))

    def download_verified(self, payload: Mapping[str, Any]) -> Response:
        return self._guard("download", lambda: self.perform_download_verified(payload))

    def perform_generate(self, payload: Mapping[str, Any]) -> Response:
        """Like :meth:`generate` but raises :class:`CertificationError`."""
        request = parse_generate_request(payload, self._settings.document_categories)
        return self._generator.generate(request).to_dict()

    def perform_certify(self, payload: Mapping[str, Any]) -> Response:
        request = parse_certify_request(payload)
        return self._certifier.certify(request.document_id, force=request.force).to_dict()

    def perform_resolve(self, payload: Mapping[str, Any]) -> Response:
        request = parse_resolve_request(payload)
        lane = Lane.from_is_test(request.is_test)
        if request.entry_id is not None:
            entry = self._loader.load(request.entry_id)
        else:
            entry = self._loader.load_by_hash(str(request.hash), lane)
        link = self._resolver.resolve(entry, lane, download_name=request.download_name)
        return {"ok": True, **link.to_dict()}

    def perform_download_verified(self, payload: Mapping[str, Any]) -> Response:
        request = parse_download_request(payload)
        artifact = self._downloader.download(
            verified_document_id=request.verified_document_id, file_hash=request.hash
        )
        return artifact.to_dict()

    def open_session(self, lane: Lane) -> ResolutionSession:
        """Stateful resolution for one client: keeps path hints and drops stale results."""
        return ResolutionSession(self._resolver, self._loader, lane)

    def perform_verify(self, pdf_bytes: bytes) -> Response:
        if not pdf_bytes:
            raise RequestValidationError("PDF bytes are required")
        return self._verifier.verify(pdf_bytes).to_dict()

    @staticmethod
    def _guard(action: str, call: Callable[[], Response]) -> Response:
        try:
            return call()
        except CertificationError as exc:
            Log.warning(f"{action} rejected with {exc.code}: {exc.message}")
            return error_response(exc)
        except Exception as exc:
            Log.error(f"{action} failed unexpectedly: {exc!r}")
            return {"ok": False, "error": "INTERNAL_ERROR", "message": str(exc)}


def build_handlers(
    settings: Settings,
    storage: BaseStorageClient | None = None,
) -> DocumentHandlers:
    """Build DocumentHandlers with all required adapters."""
    storage = storage or StorageClientFactory.create(settings)
    issuer_repo = IssuerRepository()
    registry_repo = RegistryRepository(advisory_locks=settings.registry_advisory_locks)
    verified_repo = VerifiedDocumentsRepository()
    renderer = DocumentRenderer(
        verify_base_url=settings.verify_base_url,
        rasterizer=SymbolRasterizer(),
        qr_pixel_size=settings.qr_pixel_size,
        qr_margin_modules=settings.qr_margin_modules,
        qr_error_correction=settings.qr_error_correction,
    )
    stabilizer = HashStabilizer(settings.stabilization_max_iterations)
    writer = ContentAddressedStoreWriter(storage, settings)

    generator = DocumentGenerator(
        build_generation_steps(
            issuer_repo=issuer_repo,
            registry_repo=registry_repo,
            normalizer=TotalsNormalizer(settings.description_max_length),
            renderer=renderer,
            stabilizer=stabilizer,
            writer=writer,
        )
    )
    certifier = DocumentCertifier(
        registry_repo=registry_repo,
        issuer_repo=issuer_repo,
        renderer=renderer,
        stabilizer=stabilizer,
        writer=writer,
        settings=settings,
    )
    verifier = DocumentVerifier(PdfReaderFactory.create(settings), registry_repo, verified_repo)
    resolver = ArtifactResolver(
        storage,
        FallbackLocator(
            storage,
            categories=settings.document_categories,
            listing_limit=settings.fallback_listing_limit,
        ),
        settings,
    )
    loader = DocumentEntryLoader(registry_repo, verified_repo)
    return DocumentHandlers(
        generator=generator,
        certifier=certifier,
        verifier=verifier,
        resolver=resolver,
        loader=loader,
        downloader=VerifiedArtifactDownloader(storage, verified_repo),
        settings=settings,
    )
