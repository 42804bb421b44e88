from markdown_it import MarkdownIt

_markdown_it = MarkdownIt("commonmark").enable("table")


def render_html(text: str) -> str:
    """Render a markdown answer to an HTML fragment."""
    return _markdown_it.render(text)
