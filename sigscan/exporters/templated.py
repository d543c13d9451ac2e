"""Jinja-backed plain-text and Markdown renderers."""

from __future__ import annotations

from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from .base import ExportDocument, SignatureRenderer, isoformat, update_note

_TEMPLATES_DIR = Path(__file__).with_name("templates")


def create_environment() -> Environment:
    loader = FileSystemLoader(str(_TEMPLATES_DIR))
    return Environment(loader=loader, autoescape=False, trim_blocks=True, lstrip_blocks=True)


class TemplateRenderer(SignatureRenderer):
    """Renders a document through `signatures.<extension>.j2`."""

    def __init__(self, env: Environment | None = None) -> None:
        self._env = env or create_environment()

    def render(self, document: ExportDocument) -> str:
        template = self._env.get_template(f"signatures.{self.extension}.j2")
        content = template.render(
            title=document.category.title(),
            generated_at=isoformat(document.generated_at),
            project_kind=document.project_kind,
            root_path=document.root_path,
            contracts=document.contracts,
            updated_at=isoformat(document.updated_at),
            updated_note=update_note(document.updated_at) if document.updated_at else "",
        )
        return content.rstrip() + "\n"


class TextRenderer(TemplateRenderer):
    format = "txt"
    extension = "txt"


class MarkdownRenderer(TemplateRenderer):
    format = "md"
    extension = "md"
