"""Test doubles shared by unit and integration tests.

- build_pdf: writes small PDF documents in memory
- FakeOllama: scriptable stand-in for the Ollama HTTP API
"""

import json
from collections.abc import AsyncIterator
from typing import Any

import httpx


def _pdf_string(text: str) -> str:
    return text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def build_pdf(
    page_texts: list[str],
    title: str | None = None,
    author: str | None = None,
) -> bytes:
    """Build a PDF with one line of Helvetica text per page.

    Args:
        page_texts: Text for each page. Empty strings give blank pages.
        title: Optional /Title metadata.
        author: Optional /Author metadata.

    Returns:
        The PDF file bytes.
    """
    page_ids = [4 + 2 * i for i in range(len(page_texts))]
    kids = " ".join(f"{page_id} 0 R" for page_id in page_ids)

    objects: list[bytes] = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        f"<< /Type /Pages /Kids [{kids}] /Count {len(page_texts)} >>".encode(),
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    for page_id, text in zip(page_ids, page_texts, strict=True):
        objects.append(
            (
                "<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
                f"/Resources << /Font << /F1 3 0 R >> >> /Contents {page_id + 1} 0 R >>"
            ).encode()
        )
        stream = f"BT /F1 12 Tf 72 720 Td ({_pdf_string(text)}) Tj ET".encode("latin-1") if text else b""
        objects.append(b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream")

    info = ""
    if title or author:
        fields = []
        if title:
            fields.append(f"/Title ({_pdf_string(title)})")
        if author:
            fields.append(f"/Author ({_pdf_string(author)})")
        objects.append(f"<< {' '.join(fields)} >>".encode("latin-1"))
        info = f" /Info {len(objects)} 0 R"

    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += f"{number} 0 obj\n".encode() + body + b"\nendobj\n"

    xref_offset = len(out)
    out += f"xref\n0 {len(objects) + 1}\n".encode()
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += f"{offset:010d} 00000 n \n".encode()
    out += (
        f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R{info} >>\n"
        f"startxref\n{xref_offset}\n%%EOF\n"
    ).encode()
    return bytes(out)


def ndjson(*fragments: dict[str, Any]) -> bytes:
    return b"".join(json.dumps(fragment).encode() + b"\n" for fragment in fragments)


class FakeOllama:
    """Scriptable Ollama server for httpx.MockTransport.

    Attributes:
        generate_body: Raw /api/generate response body.
        generate_status: Status code for /api/generate.
        content_type: Content type for /api/generate.
        generate_stream: Optional async byte iterator used instead of the body.
        models: Entries returned by /api/tags.
        details: Payload returned by /api/show.
        fail_with: httpx exception class raised for every request.
        requests: Every request received.
    """

    def __init__(self) -> None:
        self.generate_body = ndjson(
            {"response": "Hello", "done": False},
            {"response": " world", "done": False},
            {"response": "", "done": True},
        )
        self.generate_status = 200
        self.content_type = "application/x-ndjson"
        self.generate_stream: AsyncIterator[bytes] | None = None
        self.models: list[dict[str, Any]] = [
            {"name": "llama3:latest", "modified_at": "2024-05-01T10:00:00Z", "size": 4661224676},
            {"name": "llava:latest", "modified_at": "2024-04-01T10:00:00Z", "size": 4733363377},
        ]
        self.details: dict[str, Any] = {"modelfile": "FROM llama3", "parameters": "stop <|eot_id|>"}
        self.fail_with: type[httpx.TransportError] | None = None
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with is not None:
            raise self.fail_with("All connection attempts failed", request=request)

        if request.url.path == "/api/generate":
            content = self.generate_stream if self.generate_stream is not None else self.generate_body
            return httpx.Response(
                self.generate_status,
                content=content,
                headers={"content-type": self.content_type},
            )
        if request.url.path == "/api/tags":
            return httpx.Response(200, json={"models": self.models})
        if request.url.path == "/api/show":
            return httpx.Response(200, json=self.details)
        return httpx.Response(404, json={"error": f"unknown path {request.url.path}"})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def last_payload(self) -> dict[str, Any]:
        return json.loads(self.requests[-1].content)
