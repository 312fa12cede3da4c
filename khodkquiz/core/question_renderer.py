"""Markdown rendering for question and option text.

Architecture note:
    Quiz authors embed code snippets as fenced blocks (```python ... ```).
    markdown-it already tags those blocks with ``language-<name>`` classes, so
    the player page can hand them to any client-side highlighter without the
    server knowing about languages. Raw HTML in question text stays disabled:
    questions come from other users and are rendered verbatim into the page.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from markdown_it import MarkdownIt

from khodkquiz.core.models import QuizQuestion

_EMPTY_FRAGMENT = "<p><em>No content provided.</em></p>"


@dataclass(slots=True)
class QuestionRenderer:
    """Converts question markdown into HTML fragments."""

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

        sanitized = markdown_text.strip()
        if not sanitized:
            return _EMPTY_FRAGMENT
        return self._markdown.render(sanitized)

    def render_inline(self, markdown_text: str) -> str:
        """Render short text (option labels) without a wrapping paragraph."""

        sanitized = markdown_text.strip()
        if not sanitized:
            return ""
        return self._markdown.renderInline(sanitized)

    def render_question(self, question: QuizQuestion) -> dict[str, object]:
        return {
            "question_html": self.render_fragment(question.text),
            "options_html": [self.render_inline(option.text) for option in question.options],
        }


renderer = QuestionRenderer()
# Shared instance; MarkdownIt renders are read-only once the parser is built,
# so request threads of the player server may reuse it.
