"""The workspace: one current document plus one chat transcript.

The workspace is the only owner of mutable view state. Captures run without
holding anything: they reserve a document version up front and commit only if
no newer load or clear happened in the meantime.
"""

from __future__ import annotations

from dataclasses import dataclass

from core.config import Settings
from core.error_handler import StructuredLogger
from core.exceptions import InputValidationError
from services.capture.pipeline import CaptureService
from services.capture.urls import ensure_capture_url, is_pdf_url, normalize_user_input
from services.context_builder import ContextBuilder
from services.documents import Document, DocumentSnapshot, DocumentStore
from services.inference.client import OllamaClient
from services.inference.exceptions import InferenceConnectionError
from services.inference.session import StreamListener, StreamSession
from services.inference.transcript import ChatTranscript
from services.renderer import IsolatedRenderer


logger = StructuredLogger(__name__)


@dataclass(frozen=True, slots=True)
class SummaryResult:
    text: str
    model: str
    generated: bool


class Workspace:
    def __init__(
        self,
        *,
        capture_service: CaptureService,
        client: OllamaClient,
        context_builder: ContextBuilder | None = None,
        renderer: IsolatedRenderer | None = None,
        chat_model: str = "gpt-oss:20b",
        summary_model: str = "gpt-oss:20b",
        search_url_template: str = "https://www.bing.com/search?q={query}",
        allow_private_hosts: bool = False,
    ) -> None:
        self.capture_service = capture_service
        self.client = client
        self.context_builder = context_builder or ContextBuilder()
        self.renderer = renderer or IsolatedRenderer()
        self.chat_model = chat_model
        self.summary_model = summary_model
        self.search_url_template = search_url_template
        self.allow_private_hosts = allow_private_hosts

        self.documents = DocumentStore()
        self.transcript = ChatTranscript()
        self.session: StreamSession | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> Workspace:
        return cls(
            capture_service=CaptureService.from_settings(settings),
            client=OllamaClient(
                settings.OLLAMA_BASE_URL,
                timeout_seconds=settings.INFERENCE_TIMEOUT_SECONDS,
            ),
            context_builder=ContextBuilder(max_chars=settings.CONTEXT_MAX_CHARS),
            chat_model=settings.CHAT_MODEL,
            summary_model=settings.SUMMARY_MODEL,
            search_url_template=settings.SEARCH_URL_TEMPLATE,
            allow_private_hosts=settings.CAPTURE_ALLOW_PRIVATE_HOSTS,
        )

    # ------------------------------------------------------------------
    # Document
    # ------------------------------------------------------------------

    @property
    def document(self) -> Document:
        return self.documents.snapshot().document

    def snapshot(self) -> DocumentSnapshot:
        return self.documents.snapshot()

    async def navigate(self, raw_input: str) -> DocumentSnapshot:
        """Load whatever the user typed into the URL bar.

        Raises:
            InputValidationError: If the input cannot become an allowed URL.
            StaleDocumentError: If a newer load or clear superseded this one
                while the page was being captured.
        """
        candidate = normalize_user_input(raw_input, self.search_url_template)
        url = ensure_capture_url(candidate, allow_private_hosts=self.allow_private_hosts)
        if is_pdf_url(url):
            return self.load_pdf(url)

        version = self.documents.reserve()
        logger.info("Loading page", url=url, version=version)
        result = await self.capture_service.capture(url)
        return self.documents.commit(version, result.document)

    async def handle_navigate_message(self, url: str) -> DocumentSnapshot:
        """Follow a link clicked inside the rendered document."""
        return await self.navigate(url)

    def load_pdf(self, url: str, filename: str | None = None) -> DocumentSnapshot:
        target = ensure_capture_url(url, allow_private_hosts=self.allow_private_hosts)
        logger.info("Loading PDF reference", url=target)
        return self.documents.replace(Document.pdf(target, title=filename))

    def clear_document(self) -> DocumentSnapshot:
        logger.info("Clearing document view")
        return self.documents.clear()

    def render(self) -> str:
        return self.renderer.render(self.document)

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    def start_chat(
        self, user_text: str, listener: StreamListener | None = None
    ) -> StreamSession:
        """Open a new turn and start streaming the answer on its own task.

        Raises:
            InputValidationError: If the message is blank.
            StreamBusyError: If the previous turn is still in flight.
        """
        text = (user_text or "").strip()
        if not text:
            raise InputValidationError("Message must not be empty")

        turn = self.transcript.begin_turn(text)
        snapshot = self.documents.snapshot()
        prompt = self.context_builder.build(
            snapshot.document, text, version=snapshot.version
        )
        logger.info(
            "Starting chat turn",
            turn_index=turn.index,
            grounded=prompt.grounded,
            truncated=prompt.truncated,
            document_version=snapshot.version,
            model=self.chat_model,
        )
        session = StreamSession(
            self.client,
            self.transcript,
            turn,
            prompt=prompt.text,
            model=self.chat_model,
            listener=listener,
        )
        self.session = session
        session.start()
        return session

    def stop_chat(self) -> bool:
        if self.session is None:
            return False
        return self.session.stop()

    async def summarize(self) -> SummaryResult:
        """Summarize the current document with the summary model.

        Raises:
            InferenceHTTPError: On a non-2xx response from the model server.
            ModelError: If the model server reports an error.
        """
        snapshot = self.documents.snapshot()
        prompt = self.context_builder.build(
            snapshot.document, "Summary", is_summary=True, version=snapshot.version
        )
        if not prompt.grounded:
            reason = prompt.warning or "No content is loaded in the viewer."
            return SummaryResult(
                text=(
                    "## Summary\n\n"
                    "**Content extraction failed or nothing is loaded.**\n\n"
                    f"Reason: {reason}"
                ),
                model=self.summary_model,
                generated=False,
            )

        try:
            result = await self.client.generate(prompt.text, self.summary_model)
        except InferenceConnectionError as e:
            logger.warning("Summary generation could not reach the model server")
            return SummaryResult(text=e.message, model=self.summary_model, generated=False)

        return SummaryResult(
            text=f"## Summary ({self.summary_model})\n\n{result or '(no response)'}",
            model=self.summary_model,
            generated=True,
        )
