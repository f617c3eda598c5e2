from jinja2 import Environment, FileSystemLoader, select_autoescape
from pathlib import Path
from typing import Dict, Any

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"


class PDFService:
    def __init__(self, template_dir: Path = TEMPLATE_DIR):
        # 템플릿 환경 설정
        self.env = Environment(
            loader=FileSystemLoader(template_dir),
            autoescape=select_autoescape(["html"]),
        )

    def render_html(self, template_name: str, data: Dict[str, Any]) -> str:
        """템플릿을 렌더링하여 HTML 생성"""
        template = self.env.get_template(template_name)
        return template.render(**data)

    def _html_to_pdf(self, html_content: str) -> bytes:
        """HTML을 PDF로 변환"""
        # WeasyPrint는 시스템 라이브러리(Pango)를 로드하므로 실제 변환 시점에 import
        import weasyprint

        return weasyprint.HTML(string=html_content).write_pdf()

    def generate_attendance_sheet_pdf(self, data: Dict[str, Any]) -> bytes:
        """세션 서명부(Feuille d'émargement) PDF 생성"""
        html = self.render_html("attendance_sheet.html", data)
        return self._html_to_pdf(html)


pdf_service = PDFService()
