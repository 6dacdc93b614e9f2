"""
Documents feature: text extraction from stored files.

Plain text is decoded directly. PDFs are parsed locally first and fall back to
Gemini OCR when the text layer is missing. DOCX goes through python-docx with
the same fallback. Images, audio/video and anything else go to Gemini's
multimodal endpoint.
"""

import asyncio
import logging
import os
import tempfile

from case_tracker.core.exceptions import ProviderError

logger = logging.getLogger(__name__)

# Inserted between PDF pages; matches the chunker's page-break pattern
PAGE_SEPARATOR = "\n\n-----\n\n"
# Below this a PDF is treated as scanned and sent to OCR
MIN_DIRECT_PDF_TEXT = 100

DOCX_TYPES = {
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/msword",
}

PROMPTS = {
    "pdf": (
        "You are a PDF text extraction assistant. Extract all text content faithfully as plain "
        "text with proper spacing and paragraph breaks. Only return the extracted text.",
        "This is a PDF document. Extract all text content, preserving the document structure. "
        "Mark each new page with a line containing only '-----'.",
    ),
    "image": (
        "You are an OCR assistant. Extract all text content from this image faithfully as plain "
        "text with proper spacing and paragraph breaks. Only return the extracted text.",
        "This is an image that may contain text. Extract all visible text, keeping the original "
        "structure as much as possible.",
    ),
    "docx": (
        "You are a document parser. Extract all text from this Word document, including headers, "
        "paragraphs, lists and tables, as plain text with proper spacing.",
        "This is a Microsoft Word file. Extract all text content. Only return the extracted text.",
    ),
    "media": (
        "You are a transcription assistant. Transcribe all speech verbatim as plain text, one "
        "paragraph per speaker turn.",
        "Transcribe this recording. Only return the transcript.",
    ),
    "other": (
        "Extract all readable text content from this file as plain text, preserving paragraph "
        "breaks. Ignore binary content.",
        "Extract the text a user would see when opening this file.",
    ),
}


def extract_pdf_text(file_bytes: bytes) -> str:
    """Extract the PDF text layer page by page (LangChain loaders need a file path)."""
    from langchain_community.document_loaders import PyPDFLoader

    with tempfile.NamedTemporaryFile(delete=False, suffix=".pdf") as temp_file:
        temp_file.write(file_bytes)
        temp_path = temp_file.name

    try:
        pages = PyPDFLoader(temp_path).load()
    finally:
        if os.path.exists(temp_path):
            os.remove(temp_path)

    return PAGE_SEPARATOR.join(page.page_content.strip() for page in pages)


def extract_docx_text(file_bytes: bytes) -> str:
    """Paragraph text of a DOCX file, one paragraph per block."""
    import io
    import docx

    document = docx.Document(io.BytesIO(file_bytes))
    return "\n\n".join(p.text for p in document.paragraphs if p.text.strip())


class TextExtractor:
    """Turns stored file bytes into plain text."""

    def __init__(self, genai_client, model: str, timeout_seconds: float = 120.0):
        self.client = genai_client
        self.model = model
        self.timeout_seconds = timeout_seconds

    async def extract(self, file_bytes: bytes, mime_type: str, filename: str = "") -> str:
        mime_type = (mime_type or "application/octet-stream").lower()

        if mime_type.startswith("text/") or mime_type == "application/json":
            return file_bytes.decode("utf-8", errors="replace")

        if mime_type == "application/pdf":
            try:
                text = await asyncio.to_thread(extract_pdf_text, file_bytes)
            except Exception as e:
                logger.warning(f"⚠️ PDF text layer unreadable for {filename}, using OCR: {e}")
                text = ""
            if len(text.strip()) >= MIN_DIRECT_PDF_TEXT:
                return text
            logger.info(f"PDF {filename} looks scanned, extracting with Gemini OCR")
            return await self._extract_hosted(file_bytes, mime_type, "pdf")

        if mime_type in DOCX_TYPES:
            if mime_type != "application/msword":
                try:
                    text = await asyncio.to_thread(extract_docx_text, file_bytes)
                    if text.strip():
                        return text
                except Exception as e:
                    logger.warning(f"⚠️ python-docx failed for {filename}, using Gemini: {e}")
            return await self._extract_hosted(file_bytes, mime_type, "docx")

        if mime_type.startswith("image/"):
            return await self._extract_hosted(file_bytes, mime_type, "image")

        if mime_type.startswith("audio/") or mime_type.startswith("video/"):
            return await self._extract_hosted(file_bytes, mime_type, "media")

        return await self._extract_hosted(file_bytes, mime_type, "other")

    async def _extract_hosted(self, file_bytes: bytes, mime_type: str, kind: str) -> str:
        from google.genai import types

        system_instruction, prompt = PROMPTS[kind]
        try:
            response = await asyncio.wait_for(
                self.client.aio.models.generate_content(
                    model=self.model,
                    contents=[types.Part.from_bytes(data=file_bytes, mime_type=mime_type), prompt],
                    config=types.GenerateContentConfig(
                        system_instruction=system_instruction,
                        temperature=0.0,
                    ),
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            raise ProviderError("Gemini", f"{kind} extraction timed out after {self.timeout_seconds}s")
        except Exception as e:
            raise ProviderError("Gemini", f"{kind} extraction failed: {e}") from e

        return response.text or ""
