"""Jinja2-backed template loader."""

from pathlib import Path
from typing import Any, Dict, List, Optional

import jinja2
import yaml

from .exceptions import TemplateError
from .models import TemplateMetadata

TEXT_SUFFIX = ".text.jinja2"


def _autoescape(template_name: Optional[str]) -> bool:
    # Plain-text bodies and subjects are never HTML-escaped.
    if template_name is None:
        return False
    return not template_name.endswith(TEXT_SUFFIX)


class RenderedTemplate:
    """Subject and bodies produced by one render."""

    def __init__(self, subject: str, html_body: Optional[str], text_body: Optional[str]):
        self.subject = subject
        self.html_body = html_body
        self.text_body = text_body


class TemplateLoader:
    """Loads and renders Jinja2 email templates described by YAML metadata.

    A template ``name`` is made of up to three files in the template
    directory: ``name.yaml`` (metadata), ``name.jinja2`` (HTML body) and
    ``name.text.jinja2`` (plain-text body).
    """

    def __init__(self, template_dir: str):
        """Initialize the template loader.

        Args:
            template_dir: Path to the directory containing templates
        """
        self.template_dir = Path(template_dir)
        if not self.template_dir.exists():
            raise TemplateError(f"Template directory does not exist: {template_dir}")

        self.env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(self.template_dir)),
            autoescape=_autoescape,
            undefined=jinja2.StrictUndefined,
        )
        self._cache: Dict[str, TemplateMetadata] = {}

    def load_template(self, template_name: str) -> jinja2.Template:
        """Load the HTML body template.

        Raises:
            TemplateError: If template cannot be loaded
        """
        try:
            return self.env.get_template(f"{template_name}.jinja2")
        except jinja2.TemplateNotFound as e:
            raise TemplateError(f"Template not found: {template_name}") from e
        except jinja2.TemplateError as e:
            raise TemplateError(f"Error loading template {template_name}: {e}") from e

    def load_metadata(self, template_name: str) -> TemplateMetadata:
        """Load template metadata from its YAML file.

        Raises:
            TemplateError: If metadata file cannot be loaded or parsed
        """
        if template_name in self._cache:
            return self._cache[template_name]

        metadata_path = self.template_dir / f"{template_name}.yaml"
        if not metadata_path.exists():
            raise TemplateError(f"Template metadata not found: {metadata_path}")

        try:
            with open(metadata_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise TemplateError(f"Error parsing metadata {metadata_path}: {e}") from e

        if not data:
            raise TemplateError(f"Empty metadata file: {metadata_path}")

        metadata = TemplateMetadata(
            name=data.get("name", template_name),
            subject=data.get("subject", ""),
            required_variables=data.get("required_variables", []),
            optional_variables=data.get("optional_variables", []),
            has_html=data.get("has_html", True),
            has_text=data.get("has_text", False),
            description=data.get("description"),
        )

        self._cache[template_name] = metadata
        return metadata

    def missing_variables(self, template_name: str, context: Dict[str, Any]) -> List[str]:
        """Return the required variables that ``context`` does not provide."""
        metadata = self.load_metadata(template_name)
        return [
            var for var in metadata.required_variables
            if var not in context or context[var] is None
        ]

    def render_template(
        self, template_name: str, context: Dict[str, Any]
    ) -> RenderedTemplate:
        """Render subject, HTML body and text body with the given context.

        Optional variables absent from ``context`` are rendered as ``None`` so
        templates can test them with ``{% if %}``.

        Raises:
            TemplateError: If rendering fails
        """
        metadata = self.load_metadata(template_name)
        full_context = {var: None for var in metadata.optional_variables}
        full_context.update(context)

        try:
            subject = self.env.from_string(metadata.subject).render(**full_context)

            html_body = None
            if metadata.has_html:
                html_body = self.load_template(template_name).render(**full_context)

            text_body = None
            if metadata.has_text:
                try:
                    text_template = self.env.get_template(f"{template_name}{TEXT_SUFFIX}")
                    text_body = text_template.render(**full_context)
                except jinja2.TemplateNotFound:
                    pass
        except jinja2.UndefinedError as e:
            raise TemplateError(f"Missing variable in template {template_name}: {e}") from e
        except jinja2.TemplateError as e:
            raise TemplateError(f"Error rendering template {template_name}: {e}") from e

        if not html_body and not text_body:
            raise TemplateError(f"Template {template_name} rendered an empty body")

        return RenderedTemplate(subject.strip(), html_body, text_body)

    def list_templates(self) -> List[str]:
        """List all available templates."""
        return sorted(path.stem for path in self.template_dir.glob("*.yaml"))
