import argparse
import webbrowser
from typing import ClassVar, Optional, Sequence

from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.widgets import Footer, Header, Input, Label, ListItem, ListView, Static, Tree
from textual.widgets.tree import TreeNode

from hn_feed.client import ItemSource, SearchSource
from hn_feed.config import FeedSettings, get_settings
from hn_feed.constants import MSG_NO_MORE_RESULTS, MSG_NO_POLLS
from hn_feed.logging_config import configure_logging
from hn_feed.models import CommentNode, FeedType, Item, SearchHit
from hn_feed.render import AcceptCallback
from hn_feed.session import FeedSession
from hn_feed.text_utils import format_timestamp, strip_html

# Rows from the bottom of the post list that count as "near the end"
SCROLL_MARGIN_ROWS = 3


class PostItem(ListItem):
    def __init__(self, item: Item, options: Sequence[Item] = ()):
        super().__init__()
        self.item = item
        self.options = list(options)

    @property
    def link(self) -> str:
        return self.item.link

    def compose(self) -> ComposeResult:
        yield Label(Text(self.item.title or "(untitled)", style="bold"), classes="title")
        for opt in self.options:
            text = strip_html(opt.text or "")
            yield Label(Text(f"  - {text} ({opt.score or 0})"), classes="option")
        yield Label(
            Text(f"{format_timestamp(self.item.time)} | {self.item.descendants or 0} comments"),
            classes="meta",
        )


class HitItem(ListItem):
    def __init__(self, hit: SearchHit):
        super().__init__()
        self.hit = hit

    @property
    def link(self) -> str:
        return self.hit.link

    def compose(self) -> ComposeResult:
        yield Label(Text(self.hit.title or "(untitled)", style="bold"), classes="title")
        yield Label(Text(format_timestamp(self.hit.created_at)), classes="meta")


class NoticeItem(ListItem):
    def __init__(self, message: str):
        super().__init__()
        self.message = message

    def compose(self) -> ComposeResult:
        yield Label(Text(self.message, style="italic"), classes="notice")


def comment_label(node: CommentNode) -> Text:
    author = node.item.by or "?"
    body = strip_html(node.item.text or "")
    label = Text(f"{author} ", style="cyan")
    label.append(f"{format_timestamp(node.item.time)}  ", style="dim")
    label.append(body[:300])
    return label


class HNFeedTUI(App):
    CSS = """
    #error { background: darkred; color: white; padding: 0 1; }
    #live { background: darkgreen; color: white; padding: 0 1; }
    #posts { width: 1fr; }
    #comments { width: 1fr; border-left: solid $primary; }
    .meta { color: $text-muted; }
    .option { color: yellow; }
    .notice { color: $accent; }
    """

    BINDINGS: ClassVar[list[Binding]] = [
        Binding("q", "quit", "Quit"),
        Binding("1", "feed('stories')", "Stories"),
        Binding("2", "feed('jobs')", "Jobs"),
        Binding("3", "feed('polls')", "Polls"),
        Binding("m", "more", "More"),
        Binding("n", "accept_update", "New posts"),
        Binding("v", "view", "View"),
    ]

    def __init__(
        self,
        settings: Optional[FeedSettings] = None,
        source: Optional[ItemSource] = None,
        search_source: Optional[SearchSource] = None,
    ):
        super().__init__()
        self.settings = settings or get_settings()
        self._source = source
        self._search_source = search_source
        self.session: Optional[FeedSession] = None
        self.pending_update: Optional[AcceptCallback] = None
        self._tree_nodes: dict[CommentNode, TreeNode] = {}

    def compose(self) -> ComposeResult:
        yield Header()
        yield Static(id="error")
        yield Static(id="live")
        yield Input(placeholder="Search Hacker News...", id="search")
        with Horizontal():
            yield ListView(id="posts")
            yield Tree(Text("Comments"), id="comments")
        yield Footer()

    async def on_mount(self) -> None:
        self.query_one("#error", Static).display = False
        self.query_one("#live", Static).display = False
        if self._source is None:
            self.session = FeedSession.from_settings(self, self.settings)
        else:
            self.session = FeedSession(
                self._source, self, self._search_source, self.settings
            )
        self.session.trigger.scroll_margin = SCROLL_MARGIN_ROWS
        posts = self.query_one("#posts", ListView)
        self.watch(posts, "scroll_y", self._on_posts_scroll, init=False)
        posts.focus()
        self.run_worker(self.session.start(), exclusive=False)

    async def on_unmount(self) -> None:
        if self.session is not None:
            await self.session.close()

    # Renderer

    def render_item(self, item: Item, options: Sequence[Item] = ()) -> None:
        self.query_one("#posts", ListView).append(PostItem(item, options))

    def render_no_more_results(self) -> None:
        self.query_one("#posts", ListView).append(NoticeItem(MSG_NO_MORE_RESULTS))

    def render_no_polls_available(self) -> None:
        self.query_one("#posts", ListView).append(NoticeItem(MSG_NO_POLLS))

    def render_comment_children(
        self, parent: CommentNode, children: Sequence[CommentNode]
    ) -> None:
        tree_node = self._tree_nodes.get(parent)
        if tree_node is None:
            return
        for child in children:
            self._tree_nodes[child] = tree_node.add(
                comment_label(child), data=child, allow_expand=child.has_children
            )
        tree_node.expand()

    def clear_children(self, node: CommentNode) -> None:
        tree_node = self._tree_nodes.get(node)
        if tree_node is None:
            return
        self._forget_tree_children(tree_node)
        tree_node.remove_children()

    def clear_feed(self) -> None:
        self.query_one("#posts", ListView).clear()
        self.query_one("#comments", Tree).clear()
        self._tree_nodes.clear()

    def render_error_banner(self, message: str) -> None:
        banner = self.query_one("#error", Static)
        banner.update(Text(message))
        banner.display = True

    def clear_error_banner(self) -> None:
        banner = self.query_one("#error", Static)
        banner.update("")
        banner.display = False

    def render_live_update_banner(self, count: int, on_accept: AcceptCallback) -> None:
        self.pending_update = on_accept
        banner = self.query_one("#live", Static)
        banner.update(Text(f"{count} new posts available. Press n to refresh."))
        banner.display = True

    def clear_live_update_banner(self) -> None:
        self.pending_update = None
        self.query_one("#live", Static).display = False

    def render_search_results(self, hits: Sequence[SearchHit]) -> None:
        posts = self.query_one("#posts", ListView)
        posts.clear()
        for hit in hits:
            posts.append(HitItem(hit))

    # Events

    def _forget_tree_children(self, tree_node: TreeNode) -> None:
        for child in tree_node.children:
            self._forget_tree_children(child)
            if isinstance(child.data, CommentNode):
                self._tree_nodes.pop(child.data, None)

    def _on_posts_scroll(self, scroll_y: float) -> None:
        if self.session is None:
            return
        posts = self.query_one("#posts", ListView)
        self.session.trigger.on_scroll(
            posts.size.height, scroll_y, posts.virtual_size.height
        )

    def on_list_view_highlighted(self, event: ListView.Highlighted) -> None:
        if self.session is None or event.list_view.index is None:
            return
        remaining = len(event.list_view.children) - event.list_view.index
        # The last rows act as the sentinel
        self.session.trigger.on_intersection(remaining <= SCROLL_MARGIN_ROWS)

    def on_list_view_selected(self, event: ListView.Selected) -> None:
        if self.session is None or not isinstance(event.item, PostItem):
            return
        root = self.session.tree.root(event.item.item)
        self.session.tree.collapse(root)
        tree = self.query_one("#comments", Tree)
        self._tree_nodes.clear()
        tree.reset(Text(event.item.item.title or "Comments", style="bold"), data=root)
        self._tree_nodes[root] = tree.root
        self.run_worker(self.session.tree.expand(root), exclusive=False)

    def on_tree_node_expanded(self, event: Tree.NodeExpanded) -> None:
        node = event.node.data
        if self.session is None or not isinstance(node, CommentNode):
            return
        self.run_worker(self.session.tree.expand(node), exclusive=False)

    def on_tree_node_collapsed(self, event: Tree.NodeCollapsed) -> None:
        node = event.node.data
        if self.session is None or not isinstance(node, CommentNode):
            return
        self.session.tree.collapse(node)

    def on_input_changed(self, event: Input.Changed) -> None:
        if self.session is None or self.session.search is None:
            return
        if event.input.id == "search":
            self.session.search.on_input(event.value)

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if self.session is None or self.session.search is None:
            return
        if event.input.id == "search":
            self.session.search.submit()

    # Actions

    def action_feed(self, name: str) -> None:
        if self.session is None:
            return
        self.run_worker(self.session.switch_type(FeedType(name)), exclusive=False)

    def action_more(self) -> None:
        if self.session is not None:
            self.session.trigger.request()

    def action_accept_update(self) -> None:
        if self.pending_update is not None:
            self.run_worker(self.pending_update(), exclusive=False)

    def action_view(self) -> None:
        item = self.query_one("#posts", ListView).highlighted_child
        if isinstance(item, (PostItem, HitItem)):
            webbrowser.open_new_tab(item.link)


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--log-level", default="WARNING")
    args = parser.parse_args()
    configure_logging(args.log_level)
    HNFeedTUI().run()
