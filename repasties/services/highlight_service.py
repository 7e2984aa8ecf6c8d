"""
Repasties — Syntax Highlighting Service
========================================

What:  Turns snippet text plus a language tag into HTML markup.
How:   Two interchangeable strategies behind HighlightRenderer:
         LocalHighlighter   runs `pygmentize` as a child process
         RemoteHighlighter  POSTs the code to a Pygments web service
       `select_strategy()` looks the executable up on PATH once, at start-up.
       The choice is fixed for the life of the process.
Who:   SnippetStore.create() renders every snippet before inserting it.

Failure semantics:
    Both strategies raise RenderError and never return partial output:
    a non-zero exit status from pygmentize and a non-2xx answer from the
    web service are both failures. No timeout is applied to either call.

Subprocess I/O:
    stdin is fed and stdout/stderr are drained concurrently by
    `Process.communicate()`, so output larger than the pipe buffer cannot
    deadlock the writer. The child is killed and reaped if the awaiting
    task is cancelled.
"""

import asyncio
import logging
import shutil
import time
from typing import List, Optional

import httpx

from repasties.config import Settings
from repasties.exceptions import RenderError
from repasties.services.highlight_base import HighlightStrategy

logger = logging.getLogger(__name__)

# Language tag that bypasses highlighting entirely
PLAIN_TEXT = "text"

# Characters of stderr kept in RenderError context
_STDERR_LIMIT = 500


# ══════════════════════════════════════════════════════════════════════════
# Local Strategy (pygmentize subprocess)
# ══════════════════════════════════════════════════════════════════════════

class LocalHighlighter(HighlightStrategy):
    """
    Runs the local Pygments command-line tool:

        pygmentize -l <lang> -f html -O encoding=utf-8,style=colorful,linenos=1

    The argument vector is passed directly to exec; no shell is involved,
    so the language tag cannot inject commands.
    """

    name = "local"

    def __init__(self, settings: Settings, executable: Optional[str] = None):
        self.executable = executable or settings.highlight_executable
        self.encoding = settings.highlight_encoding
        self.style = settings.highlight_style
        self.line_numbers = settings.highlight_line_numbers

    def command(self, lang: str) -> List[str]:
        """Argument vector for one highlighting run."""
        options = "encoding={},style={},linenos={}".format(
            self.encoding, self.style, 1 if self.line_numbers else 0
        )
        return [self.executable, "-l", lang, "-f", "html", "-O", options]

    async def highlight(self, code: str, lang: str) -> str:
        args = self.command(lang)

        try:
            payload = code.encode(self.encoding)
        except UnicodeEncodeError as e:
            logger.error("Snippet is not encodable as %s: %s", self.encoding, str(e))
            raise RenderError(
                message="The snippet contains characters the highlighter cannot read",
                context={"encoding": self.encoding, "error_type": type(e).__name__},
            ) from e

        start_time = time.perf_counter()

        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.error("Cannot run highlighter %s: %s", self.executable, str(e))
            raise RenderError(
                message="The local syntax highlighter could not be started",
                context={"executable": self.executable, "error_type": type(e).__name__},
            ) from e

        try:
            stdout, stderr = await process.communicate(payload)
        except asyncio.CancelledError:
            if process.returncode is None:
                process.kill()
            await process.wait()
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000

        if process.returncode != 0:
            error_text = stderr.decode(self.encoding, errors="replace")[:_STDERR_LIMIT]
            logger.error(
                "Highlighter exited with status %d for lang=%s after %.0fms: %s",
                process.returncode,
                lang,
                duration_ms,
                error_text,
            )
            raise RenderError(
                context={
                    "executable": self.executable,
                    "lang": lang,
                    "returncode": process.returncode,
                    "stderr": error_text,
                },
            )

        logger.debug(
            "Highlighted %d chars of %s locally in %.0fms", len(code), lang, duration_ms
        )
        return stdout.decode(self.encoding, errors="replace")


# ══════════════════════════════════════════════════════════════════════════
# Remote Strategy (Pygments web service)
# ══════════════════════════════════════════════════════════════════════════

class RemoteHighlighter(HighlightStrategy):
    """
    Sends one form-encoded POST {lang, code} to the highlighting service
    and returns the response body verbatim.
    """

    name = "remote"

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = settings.highlight_service_url
        self._transport = transport

    async def highlight(self, code: str, lang: str) -> str:
        start_time = time.perf_counter()

        try:
            async with httpx.AsyncClient(timeout=None, transport=self._transport) as client:
                response = await client.post(self.url, data={"lang": lang, "code": code})
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                "Highlight service %s answered %d for lang=%s",
                self.url,
                e.response.status_code,
                lang,
            )
            raise RenderError(
                message="The syntax highlighting service rejected the snippet",
                context={"url": self.url, "status_code": e.response.status_code},
            ) from e
        except httpx.HTTPError as e:
            logger.error("Highlight service %s unreachable: %s", self.url, str(e))
            raise RenderError(
                message="The syntax highlighting service is unreachable",
                context={"url": self.url, "error_type": type(e).__name__},
            ) from e

        logger.debug(
            "Highlighted %d chars of %s remotely in %.0fms",
            len(code),
            lang,
            (time.perf_counter() - start_time) * 1000,
        )
        return response.text


# ══════════════════════════════════════════════════════════════════════════
# Renderer
# ══════════════════════════════════════════════════════════════════════════

class HighlightRenderer:
    """
    Entry point used by SnippetStore.

    render(code, "text") returns the code unchanged; every other language
    goes to the strategy chosen at start-up.
    """

    def __init__(self, strategy: HighlightStrategy):
        self.strategy = strategy

    @property
    def strategy_name(self) -> str:
        return self.strategy.name

    async def render(self, code: str, lang: str) -> str:
        if lang == PLAIN_TEXT:
            return code
        return await self.strategy.highlight(code, lang.lower())


def select_strategy(settings: Settings) -> HighlightStrategy:
    """
    Pick the highlight strategy for this process.

    LocalHighlighter when the executable is on PATH, RemoteHighlighter
    otherwise. Called once from create_app().
    """
    executable = shutil.which(settings.highlight_executable)
    if executable:
        logger.info("Using local highlighter: %s", executable)
        return LocalHighlighter(settings, executable=executable)

    logger.warning(
        "Pygments executable '%s' not found on PATH. Using web service %s",
        settings.highlight_executable,
        settings.highlight_service_url,
    )
    return RemoteHighlighter(settings)


def build_renderer(settings: Settings) -> HighlightRenderer:
    return HighlightRenderer(select_strategy(settings))
