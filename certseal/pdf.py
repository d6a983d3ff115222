"""
CertSeal Reference PDF Renderer

A minimal renderer for the issuance pipeline's renderer hook. It writes a
one-page PDF carrying the certificate ID and the embedded verification
metadata, both in the page text and in the document keywords, so that a
text extractor can recover DocumentEvidence later.

Layout and theming are left to real renderers; requires reportlab
(install the "pdf" extra).
"""

import logging
import os
from datetime import datetime, timezone
from typing import Optional

from .issuance import RenderRequest
from .metadata import embed_metadata, render_metadata


logger = logging.getLogger(__name__)

METADATA_FONT_SIZE = 4


class PdfCertificateRenderer:
    """
    Renderer writing <certificate_id>.pdf into an output directory.

    Args:
        output_dir: Directory receiving rendered documents
    """

    def __init__(self, output_dir: str):
        self.output_dir = output_dir
        self.last_path: Optional[str] = None

    def path_for(self, certificate_id: str) -> str:
        return os.path.join(self.output_dir, f"{certificate_id}.pdf")

    def __call__(self, request: RenderRequest) -> str:
        from reportlab.lib.pagesizes import letter
        from reportlab.pdfgen import canvas

        os.makedirs(self.output_dir, exist_ok=True)
        path = self.path_for(request.certificate_id)
        embedded = embed_metadata(render_metadata(request))
        issued = datetime.fromtimestamp(
            request.claim.issued_at_epoch_millis / 1000, tz=timezone.utc
        ).date().isoformat()

        c = canvas.Canvas(path, pagesize=letter)
        c.setTitle(request.certificate_id)
        c.setSubject("Certificate of completion")
        c.setKeywords(embedded)

        y = letter[1] - 72
        c.setFont("Times-Roman", 20)
        c.drawString(72, y, "Certificate of Completion")
        y -= 36
        c.setFont("Times-Roman", 14)
        c.drawString(72, y, request.claim.subject_name)
        y -= 22
        c.drawString(72, y, request.claim.course_or_exam_name)
        y -= 22
        c.setFont("Times-Roman", 11)
        c.drawString(72, y, f"Issued: {issued}")
        y -= 18
        c.drawString(72, y, f"Certificate ID: {request.certificate_id}")

        # Machine-readable block, one embedding per line
        c.setFont("Courier", METADATA_FONT_SIZE)
        y = 36
        for line in embedded.splitlines():
            c.drawString(36, y, line)
            y -= METADATA_FONT_SIZE + 1

        c.showPage()
        c.save()

        self.last_path = path
        logger.debug("Rendered %s to %s", request.certificate_id, path)
        return path
