"""Markdown + LaTeX rendering helpers for questions and results.

The renderer turns source markup into HTML and leaves math to MathJax at
display time, so the same fragments work in QWebEngineView and in a plain
browser pointed at the API server.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from html import escape

from markdown_it import MarkdownIt

from assessment_app.constants.about import APP_NAME

_MATHJAX_SCRIPT = (
    "https://cdn.jsdelivr.net/npm/mathjax@3/es5/tex-mml-chtml.js"
)

DEFAULT_FONT_SIZE_PT = 14


@dataclass(slots=True)
class MarkdownMathRenderer:
    """Converts markdown-with-math into HTML fragments or full documents."""

    enable_html: bool = False
    _markdown: MarkdownIt = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._markdown = (
            MarkdownIt("commonmark", {"html": self.enable_html})
            .enable("table")
            .enable("strikethrough")
        )

    def render_fragment(self, markdown_text: str) -> str:
        """Render a markdown string into an HTML fragment."""

        sanitized = (markdown_text or "").strip()
        if not sanitized:
            return "<p><em>No content provided.</em></p>"
        return self._markdown.render(sanitized)

    def render_inline(self, markdown_text: str) -> str:
        """Render a single line without the surrounding paragraph."""

        return self._markdown.renderInline((markdown_text or "").strip())

    def wrap_with_mathjax(
        self,
        body_html: str,
        title: str = APP_NAME,
        font_size: int = DEFAULT_FONT_SIZE_PT,
    ) -> str:
        """Wrap a fragment inside a minimal HTML document that loads MathJax."""

        return f"""<!doctype html>
<html lang=\"en\">
  <head>
    <meta charset=\"utf-8\" />
    <title>{escape(title)}</title>
    <meta name=\"viewport\" content=\"width=device-width, initial-scale=1\" />
    <style>
      body {{ font-family: 'Segoe UI', system-ui, sans-serif; margin: 0; padding: 1rem; background: transparent; }}
      .assessment-html {{ font-size: {font_size}pt; line-height: 1.5; }}
      .result-line {{ border-bottom: 1px solid #ccc; padding: 0.5rem 0; }}
      .result-line.correct .verdict {{ color: #2e7d32; }}
      .result-line.incorrect .verdict, .result-line.unanswered .verdict {{ color: #c62828; }}
      .explanation {{ font-style: italic; }}
    </style>
    <script>
      window.MathJax = {{ tex: {{ inlineMath: [['$','$']], displayMath: [['$$','$$']] }}, svg: {{ fontCache: 'global' }} }};
    </script>
    <script defer src=\"{_MATHJAX_SCRIPT}\"></script>
  </head>
  <body>
    <div class=\"assessment-html\">{body_html}</div>
  </body>
</html>"""

    def render_full_document(
        self,
        markdown_text: str,
        title: str = APP_NAME,
        font_size: int = DEFAULT_FONT_SIZE_PT,
    ) -> str:
        """Convenience wrapper to render markdown and embed MathJax."""

        fragment = self.render_fragment(markdown_text)
        return self.wrap_with_mathjax(fragment, title=title, font_size=font_size)


# MarkdownIt is safe for concurrent read-only renders.
renderer = MarkdownMathRenderer()
