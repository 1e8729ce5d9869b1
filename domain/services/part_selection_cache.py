from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Coroutine
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from domain.bom_tree import BomTreeState, reachable_ids
from domain.errors import error_message
from domain.models import (
    AuditLogEntry,
    BomTreeResponse,
    ChildPartUsage,
    PartDetails,
    PartSummary,
    TreeDepth,
)
from domain.ports.part_bom import PartBomApi
from domain.services.merge_bom_nodes import merge_bom_nodes
from domain.services.normalize_bom_tree import normalize_bom_tree

logger = logging.getLogger(__name__)

T = TypeVar("T")

INITIAL_BOM_DEPTH = 1
EXPAND_BOM_DEPTH = 1

ChildLinkUpdater = Callable[[list[ChildPartUsage]], list[ChildPartUsage]]


@dataclass
class ViewState(Generic[T]):
    data: T
    loading: bool = False
    error: str | None = None


@dataclass
class MutationState:
    loading: bool = False
    error: str | None = None


@dataclass(frozen=True)
class _LoadContext:
    part_id: str
    generation: int
    initial: bool
    silent: bool


class PartSelectionCache:
    def __init__(
        self,
        api: PartBomApi,
        *,
        initial_depth: TreeDepth = INITIAL_BOM_DEPTH,
        expand_depth: TreeDepth = EXPAND_BOM_DEPTH,
        node_limit: int | None = None,
        on_part_refreshed: Callable[[PartSummary], None] | None = None,
    ) -> None:
        self._api = api
        self._initial_depth = initial_depth
        self._expand_depth = expand_depth
        self._node_limit = node_limit
        self._on_part_refreshed = on_part_refreshed
        self._generation = 0
        self._tree_epoch = 0
        self._pending: set[asyncio.Task[Any]] = set()
        self._expanding: set[tuple[int, str]] = set()
        self._audit_part_id: str | None = None

        self.selected_id: str | None = None
        self.details: ViewState[PartDetails | None] = ViewState(None)
        self.audit: ViewState[list[AuditLogEntry]] = ViewState([])
        self.bom = BomTreeState()
        self.mutation = MutationState()

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_loading(self) -> bool:
        return self.details.loading or self.audit.loading or self.bom.loading

    async def select(self, part_id: str | None) -> None:
        self._generation += 1
        self._tree_epoch += 1
        self.selected_id = part_id
        if part_id is None:
            self._reset_views()
            return

        context = _LoadContext(
            part_id=part_id,
            generation=self._generation,
            initial=True,
            silent=False,
        )
        self._begin_views(part_id)
        self.mutation.error = None
        logger.debug("Loading part %s (generation %s)", part_id, context.generation)
        await self._load_views(context)

    async def refresh(self, *, silent: bool = False) -> None:
        part_id = self.selected_id
        if part_id is None:
            return
        self._generation += 1
        context = _LoadContext(
            part_id=part_id,
            generation=self._generation,
            initial=False,
            silent=silent,
        )
        if not silent:
            self.details.loading = True
            self.audit.loading = True
            self.bom.loading = True
            self.mutation.error = None
        logger.debug("Refreshing part %s (generation %s)", part_id, context.generation)
        await self._load_views(context)

    def toggle(self, node_id: str) -> asyncio.Task[None] | None:
        if node_id in self.bom.expanded_ids:
            self.bom.expanded_ids.discard(node_id)
            return None
        self.bom.expanded_ids.add(node_id)
        if not self._begin_children_load(node_id):
            return None
        return self._spawn(self._fetch_children(node_id, self._tree_epoch))

    async def load_children(self, node_id: str) -> None:
        if not self._begin_children_load(node_id):
            return
        await self._fetch_children(node_id, self._tree_epoch)

    async def retry_children(self, node_id: str) -> None:
        await self.load_children(node_id)

    def apply_child_link_update(self, part_id: str, updater: ChildLinkUpdater) -> None:
        current = self.details.data
        if current is None or current.id != part_id or self.selected_id != part_id:
            return
        children = updater(list(current.child_parts))
        self.details.data = current.model_copy(
            update={"child_parts": children, "child_count": len(children)}
        )

    async def wait_idle(self) -> None:
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def cancel_pending(self) -> None:
        for task in list(self._pending):
            task.cancel()

    def _reset_views(self) -> None:
        self.details = ViewState(None)
        self.audit = ViewState([])
        self.bom = BomTreeState()
        self.mutation.error = None
        self._audit_part_id = None

    def _begin_views(self, part_id: str) -> None:
        # a placeholder already set for the incoming part is kept
        if not self._holds_details(part_id):
            self.details.data = None
        if not self._holds_audit(part_id):
            self.audit.data = []
            self._audit_part_id = None
        self.bom.clear()
        self.details.loading = True
        self.details.error = None
        self.audit.loading = True
        self.audit.error = None
        self.bom.loading = True
        self.bom.error = None

    def _holds_details(self, part_id: str) -> bool:
        return self.details.data is not None and self.details.data.id == part_id

    def _holds_audit(self, part_id: str) -> bool:
        return self._audit_part_id == part_id

    def _holds_tree(self, part_id: str) -> bool:
        return self.bom.root_id == part_id

    async def _load_views(self, context: _LoadContext) -> None:
        await asyncio.gather(
            self._settle(
                context,
                "details",
                self._api.get_part_details(context.part_id),
                self._commit_details,
                self._fail_details,
            ),
            self._settle(
                context,
                "audit",
                self._api.get_part_audit_logs(context.part_id),
                self._commit_audit,
                self._fail_audit,
            ),
            self._settle(
                context,
                "tree",
                self._api.get_bom_tree(context.part_id, self._initial_depth, self._node_limit),
                self._commit_tree,
                self._fail_tree,
            ),
        )

    async def _settle(
        self,
        context: _LoadContext,
        view: str,
        fetch: Awaitable[T],
        commit: Callable[[_LoadContext, T], None],
        fail: Callable[[_LoadContext, str], None],
    ) -> None:
        try:
            result = await fetch
        except Exception as exc:
            if self._is_stale(context, view):
                return
            logger.warning("Loading %s for %s failed: %s", view, context.part_id, exc)
            fail(context, error_message(exc))
            return
        if self._is_stale(context, view):
            return
        commit(context, result)

    def _is_stale(self, context: _LoadContext, view: str) -> bool:
        if context.generation == self._generation:
            return False
        logger.debug(
            "Discarding stale %s response for %s (generation %s, current %s)",
            view,
            context.part_id,
            context.generation,
            self._generation,
        )
        return True

    def _commit_details(self, context: _LoadContext, details: PartDetails) -> None:
        self.details.data = details
        self.details.error = None
        self.details.loading = False
        if not context.initial and self._on_part_refreshed is not None:
            self._on_part_refreshed(details.summary())

    def _fail_details(self, context: _LoadContext, message: str) -> None:
        fresh = context.initial or not self._holds_details(context.part_id)
        if fresh:
            self.details.data = None
        if fresh or not context.silent:
            self.details.error = message
        self.details.loading = False

    def _commit_audit(self, context: _LoadContext, logs: list[AuditLogEntry]) -> None:
        self.audit.data = list(logs)
        self.audit.error = None
        self.audit.loading = False
        self._audit_part_id = context.part_id

    def _fail_audit(self, context: _LoadContext, message: str) -> None:
        fresh = context.initial or not self._holds_audit(context.part_id)
        if fresh:
            self.audit.data = []
            self._audit_part_id = None
        if fresh or not context.silent:
            self.audit.error = message
        self.audit.loading = False

    def _commit_tree(self, context: _LoadContext, response: BomTreeResponse) -> None:
        self._apply_tree(context, response)
        self.bom.error = None
        self.bom.loading = False

    def _fail_tree(self, context: _LoadContext, message: str) -> None:
        fresh = context.initial or not self._holds_tree(context.part_id)
        if fresh:
            self._tree_epoch += 1
            self.bom.clear()
        if fresh or not context.silent:
            self.bom.error = message
        self.bom.loading = False

    def _apply_tree(self, context: _LoadContext, response: BomTreeResponse) -> None:
        root_id = response.tree.part.id
        incoming = normalize_bom_tree(response.tree, self._initial_depth)
        if context.initial or not self._holds_tree(root_id):
            self._tree_epoch += 1
            self.bom.root_id = root_id
            self.bom.nodes = incoming
            self.bom.expanded_ids = {root_id}
            return

        merged = merge_bom_nodes(self.bom.nodes, incoming)
        present = reachable_ids(merged, root_id)
        nodes = {node_id: node for node_id, node in merged.items() if node_id in present}
        # the merge resets loading flags; expands still in flight keep theirs
        for epoch, node_id in self._expanding:
            if epoch == self._tree_epoch and node_id in nodes:
                nodes[node_id] = nodes[node_id].start_loading()
        self.bom.nodes = nodes
        self.bom.expanded_ids = (self.bom.expanded_ids & present) | {root_id}

    def _begin_children_load(self, node_id: str) -> bool:
        node = self.bom.nodes.get(node_id)
        if node is None or node.loading_children or node.children_loaded or not node.has_children:
            return False
        if (self._tree_epoch, node_id) in self._expanding:
            return False
        self._expanding.add((self._tree_epoch, node_id))
        self.bom.nodes[node_id] = node.start_loading()
        return True

    async def _fetch_children(self, node_id: str, tree_epoch: int) -> None:
        try:
            response = await self._api.get_bom_tree(node_id, self._expand_depth, self._node_limit)
            incoming = normalize_bom_tree(response.tree, self._expand_depth)
        except Exception as exc:
            if not self._owns_node(node_id, tree_epoch):
                return
            logger.warning("Loading children of %s failed: %s", node_id, exc)
            node = self.bom.nodes[node_id]
            self.bom.nodes[node_id] = node.fail_loading(error_message(exc))
            return
        finally:
            self._expanding.discard((tree_epoch, node_id))

        if not self._owns_node(node_id, tree_epoch):
            return
        merged = merge_bom_nodes(self.bom.nodes, incoming)
        merged[node_id] = merged[node_id].mark_loaded()
        self.bom.nodes = merged

    def _owns_node(self, node_id: str, tree_epoch: int) -> bool:
        if tree_epoch != self._tree_epoch or node_id not in self.bom.nodes:
            logger.debug("Discarding stale children response for %s", node_id)
            return False
        return True

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task[None]:
        task = asyncio.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task
