"""
Repasties — Abstract Highlight Strategy Interface
==================================================

What:  Abstract base class for the two ways of turning code into HTML markup.
How:   LocalHighlighter (pygmentize subprocess) and RemoteHighlighter
       (HTTP service) implement `highlight()`. HighlightRenderer picks one
       at start-up and keeps it for the life of the process.
Who:   Called by HighlightRenderer, which SnippetStore calls before an insert.
"""

from abc import ABC, abstractmethod


class HighlightStrategy(ABC):
    """
    Contract:
        - highlight() receives raw code and a lower-case language tag
          (never "text"; the renderer short-circuits that case)
        - returns the highlighter's markup verbatim
        - every failure is raised as RenderError
    """

    # Reported by the health endpoint
    name: str = "unknown"

    @abstractmethod
    async def highlight(self, code: str, lang: str) -> str:
        """
        Render `code` as HTML for language `lang`.

        Raises:
            RenderError: the external highlighter failed.
        """
        ...
