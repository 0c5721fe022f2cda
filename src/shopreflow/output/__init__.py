"""Output generation modules for reflow results."""

from shopreflow.output.pdf_generator import PDFGenerator
from shopreflow.output.report_generator import ReportGenerator

__all__ = ["PDFGenerator", "ReportGenerator"]
