from __future__ import annotations

from typing import Awaitable, Callable, Optional, Protocol, Sequence

from rich.console import Console
from rich.markup import escape

from hn_feed.constants import MSG_NO_MORE_RESULTS, MSG_NO_POLLS
from hn_feed.models import CommentNode, Item, SearchHit
from hn_feed.text_utils import format_timestamp, strip_html

AcceptCallback = Callable[[], Awaitable[None]]


class Renderer(Protocol):
    """Sink for everything the feed engine wants shown."""

    def render_item(self, item: Item, options: Sequence[Item] = ()) -> None: ...

    def render_no_more_results(self) -> None: ...

    def render_no_polls_available(self) -> None: ...

    def render_comment_children(
        self, parent: CommentNode, children: Sequence[CommentNode]
    ) -> None: ...

    def clear_children(self, node: CommentNode) -> None: ...

    def clear_feed(self) -> None: ...

    def render_error_banner(self, message: str) -> None: ...

    def clear_error_banner(self) -> None: ...

    def render_live_update_banner(
        self, count: int, on_accept: AcceptCallback
    ) -> None: ...

    def clear_live_update_banner(self) -> None: ...

    def render_search_results(self, hits: Sequence[SearchHit]) -> None: ...


class ConsoleRenderer:
    """Prints the feed to a terminal with rich."""

    INDENT = "  "

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()
        self.pending_update: Optional[AcceptCallback] = None

    def render_item(self, item: Item, options: Sequence[Item] = ()) -> None:
        title = escape(item.title or "(untitled)")
        self.console.print(f"[bold]{title}[/] [dim]{escape(item.link)}[/]")
        for opt in options:
            text = escape(strip_html(opt.text or ""))
            self.console.print(f"{self.INDENT}- {text} ({opt.score or 0})")
        self.console.print(
            f"[dim]{format_timestamp(item.time)} | {item.descendants or 0} comments"
            f" | id {item.id}[/]"
        )

    def render_no_more_results(self) -> None:
        self.console.print(f"[yellow]{MSG_NO_MORE_RESULTS}[/]")

    def render_no_polls_available(self) -> None:
        self.console.print(f"[yellow]{MSG_NO_POLLS}[/]")

    def render_comment_children(
        self, parent: CommentNode, children: Sequence[CommentNode]
    ) -> None:
        for child in children:
            pad = self.INDENT * child.depth
            body = escape(strip_html(child.item.text or ""))
            author = escape(child.item.by or "?")
            self.console.print(
                f"{pad}[cyan]{author}[/] [dim]{format_timestamp(child.item.time)}[/]"
            )
            self.console.print(f"{pad}{body}")

    def clear_children(self, node: CommentNode) -> None:
        # Printed output cannot be retracted
        pass

    def clear_feed(self) -> None:
        self.console.rule()

    def render_error_banner(self, message: str) -> None:
        self.console.print(f"[red]{escape(message)}[/]")

    def clear_error_banner(self) -> None:
        pass

    def render_live_update_banner(self, count: int, on_accept: AcceptCallback) -> None:
        self.pending_update = on_accept
        self.console.print(f"[green]{count} new posts available.[/]")

    def clear_live_update_banner(self) -> None:
        self.pending_update = None

    def render_search_results(self, hits: Sequence[SearchHit]) -> None:
        self.console.rule()
        for hit in hits:
            self.console.print(
                f"[bold]{escape(hit.title)}[/] [dim]{escape(hit.link)}[/]"
            )
