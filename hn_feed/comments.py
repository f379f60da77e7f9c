from __future__ import annotations

import logging
from typing import Optional

from hn_feed.cache import ErrorCallback, ItemCache
from hn_feed.feed import sort_newest_first
from hn_feed.models import CommentNode, ExpansionState, Item
from hn_feed.render import Renderer

logger = logging.getLogger(__name__)


class CommentTree:
    """
    Lazily materialized reply trees, one node per item id.

    Expanding a node fetches and renders only its immediate children; each
    child expands on its own request. By default collapsing throws the
    children away and a later expand rebuilds them (the item cache absorbs
    the refetch). With retain_children the fetched children survive a
    collapse.
    """

    def __init__(
        self,
        cache: ItemCache,
        renderer: Renderer,
        retain_children: bool = False,
    ) -> None:
        self._cache = cache
        self._renderer = renderer
        self.retain_children = retain_children
        self._nodes: dict[int, CommentNode] = {}

    def root(self, item: Item) -> CommentNode:
        """Node for a top-level feed item, reused across calls."""
        node = self._nodes.get(item.id)
        if node is None or node.depth != 0:
            node = CommentNode(item=item)
            self._nodes[item.id] = node
        return node

    def node(self, item_id: int) -> Optional[CommentNode]:
        return self._nodes.get(item_id)

    async def expand(self, node: CommentNode) -> list[CommentNode]:
        """Fetch and render node's children; returns them."""
        if not node.has_children:
            return []
        if node.state is ExpansionState.EXPANDING:
            return []
        if node.state is ExpansionState.EXPANDED:
            return list(node.children)

        node.state = ExpansionState.EXPANDING
        if self.retain_children and node.children:
            children = node.children
        else:
            epoch = node.epoch
            items = await self._cache.get_many(node.item.kids)
            if node.epoch != epoch or node.state is not ExpansionState.EXPANDING:
                logger.debug(f"Dropping expansion of {node.id} after collapse")
                return []
            children = self._build_children(node, items)

        node.children = children
        node.state = ExpansionState.EXPANDED
        self._renderer.render_comment_children(node, children)
        return list(children)

    def collapse(self, node: CommentNode) -> None:
        if node.state is ExpansionState.COLLAPSED:
            return
        node.epoch += 1
        node.state = ExpansionState.COLLAPSED
        if self.retain_children:
            for child in node.children:
                self._reset(child)
        else:
            for child in node.children:
                self._forget(child)
            node.children = []
        self._renderer.clear_children(node)

    async def toggle(self, node: CommentNode) -> list[CommentNode]:
        if node.state is ExpansionState.COLLAPSED:
            return await self.expand(node)
        self.collapse(node)
        return []

    async def poll_options(
        self, poll: Item, on_error: Optional[ErrorCallback] = None
    ) -> list[Item]:
        """A poll's options in upstream order; options are leaves."""
        options = await self._cache.get_many(poll.parts, on_error=on_error)
        return [o for o in options if o is not None and not o.deleted]

    def _build_children(
        self, parent: CommentNode, items: list[Optional[Item]]
    ) -> list[CommentNode]:
        alive = [it for it in items if it is not None and not it.deleted and not it.dead]
        children = [
            CommentNode(item=it, depth=parent.depth + 1) for it in sort_newest_first(alive)
        ]
        for child in children:
            self._nodes[child.id] = child
        return children

    def _reset(self, node: CommentNode) -> None:
        node.epoch += 1
        node.state = ExpansionState.COLLAPSED
        for child in node.children:
            self._reset(child)

    def _forget(self, node: CommentNode) -> None:
        node.epoch += 1
        for child in node.children:
            self._forget(child)
        if self._nodes.get(node.id) is node:
            del self._nodes[node.id]
