"""
Taxonomy Tree

Arena of category nodes keyed by stable id, with parent/children stored as
id references. Built wholesale from category-path strings on every import
and read-only afterwards, so matching workers can share it safely.
"""

from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Set, Tuple

import structlog

from taxonomy_insights.errors import (
    CyclicParentWarning,
    DanglingParentWarning,
    PipelineWarning,
    TaxonomyConflictError,
)
from taxonomy_insights.models import Product, TaxonomyNode
from .paths import humanize_segment, node_id_for, split_category_path

logger = structlog.get_logger(__name__)


def _chain_key(segments: Sequence[str]) -> Tuple[str, ...]:
    return tuple(s.casefold() for s in segments)


class TaxonomyTree:
    """
    Category forest with traversal helpers.
    
    Example:
        tree = TaxonomyTree.build(["Electronics > Phones", "Electronics > Laptops"])
        tree.ancestors_of("electronics-phones")
    """
    
    def __init__(self):
        self._nodes: Dict[str, TaxonomyNode] = {}
        self._keys: Dict[str, Tuple[str, ...]] = {}
        self._forced_roots: Set[str] = set()
        self.conflicts: List[TaxonomyConflictError] = []
        self.dangling_parents: Dict[str, str] = {}
        self.anomalies: List[PipelineWarning] = []
        self.unassigned_products: List[str] = []
    
    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------
    
    @classmethod
    def build(cls, category_paths: Iterable[str], strict: bool = False) -> "TaxonomyTree":
        """
        Build a tree from delimiter-joined category strings.
        
        Paths are processed in normalized sorted order so the result depends
        only on the set of paths. A path whose id collides with a different
        chain is skipped and recorded in ``conflicts``; other paths proceed.
        
        Args:
            category_paths: Raw strings such as ``"Electronics > Phones"``
            strict: Raise the first ``TaxonomyConflictError`` instead
        """
        tree = cls()
        unique = sorted({split_category_path(p) for p in category_paths if p} - {()})
        
        for segments in unique:
            try:
                tree._add_segments(segments)
            except TaxonomyConflictError as e:
                if strict:
                    raise
                tree.conflicts.append(e)
                logger.warning(
                    "Taxonomy conflict, path skipped",
                    node_id=e.node_id,
                    path=" > ".join(segments),
                )
        
        logger.info(
            "Taxonomy built",
            paths=len(unique),
            nodes=len(tree),
            roots=len(tree.roots()),
            conflicts=len(tree.conflicts),
        )
        return tree
    
    @classmethod
    def from_products(
        cls,
        products: Iterable[Product],
        category_paths: Iterable[str] = (),
        strict: bool = False,
    ) -> "TaxonomyTree":
        """
        Build from product category paths and place each product on its deepest node.
        
        ``category_paths`` adds categories that carry no products yet.
        """
        products = list(products)
        paths = list(category_paths) + [p.category_path for p in products if p.category_path]
        tree = cls.build(paths, strict=strict)
        
        for product in products:
            segments = split_category_path(product.category_path or "")
            node_id = node_id_for(segments) if segments else None
            if node_id is not None and node_id in tree and tree._keys[node_id] == _chain_key(segments):
                tree._nodes[node_id].direct_product_ids.add(product.id)
            else:
                tree.unassigned_products.append(product.id)
        
        if tree.unassigned_products:
            logger.warning("Products without a category node", count=len(tree.unassigned_products))
        return tree
    
    @classmethod
    def from_nodes(cls, nodes: Iterable[TaxonomyNode]) -> "TaxonomyTree":
        """
        Rebuild an arena from stored node records.
        
        Children lists are re-derived from ``parent_id``. A node whose parent
        is missing is treated as a root and reported as a dangling parent.
        Parent cycles are broken at their smallest id and reported.
        """
        tree = cls()
        for node in nodes:
            tree._nodes[node.id] = TaxonomyNode(
                id=node.id,
                title=node.title,
                path=tuple(node.path),
                depth=node.depth,
                parent_id=node.parent_id,
                direct_product_ids=set(node.direct_product_ids),
                url=node.url,
            )
            tree._keys[node.id] = _chain_key(node.path)
        
        for node_id in sorted(tree._nodes):
            parent_id = tree._nodes[node_id].parent_id
            if parent_id is None:
                continue
            if parent_id not in tree._nodes:
                tree.dangling_parents[node_id] = parent_id
                tree.anomalies.append(DanglingParentWarning(
                    f"Node '{node_id}' references missing parent '{parent_id}'",
                    subject=node_id,
                ))
                logger.warning("Dangling parent", node_id=node_id, parent_id=parent_id)
                continue
            tree._nodes[parent_id].children.append(node_id)
        
        tree._break_cycles()
        return tree
    
    def add_path(self, category_path: str) -> str:
        """
        Add one category string and return the id of its deepest node.
        
        Raises:
            TaxonomyConflictError: a prefix id already maps to another chain
        """
        segments = split_category_path(category_path)
        if not segments:
            raise ValueError(f"Empty category path: {category_path!r}")
        return self._add_segments(segments)
    
    def _add_segments(self, segments: Tuple[str, ...]) -> str:
        # Check every prefix before mutating so a conflicting path leaves no partial subtree
        prefixes = [segments[: i + 1] for i in range(len(segments))]
        for prefix in prefixes:
            node_id = node_id_for(prefix)
            existing = self._keys.get(node_id)
            if existing is not None and existing != _chain_key(prefix):
                raise TaxonomyConflictError(node_id, self._nodes[node_id].path, prefix)
        
        parent_id: Optional[str] = None
        for depth, prefix in enumerate(prefixes):
            node_id = node_id_for(prefix)
            if node_id not in self._nodes:
                self._nodes[node_id] = TaxonomyNode(
                    id=node_id,
                    title=humanize_segment(prefix[-1]),
                    path=prefix,
                    depth=depth,
                    parent_id=parent_id,
                )
                self._keys[node_id] = _chain_key(prefix)
                if parent_id is not None:
                    self._nodes[parent_id].children.append(node_id)
            parent_id = node_id
        return parent_id
    
    def _break_cycles(self) -> None:
        reached = self._reachable()
        while len(reached) < len(self._nodes):
            start = min(set(self._nodes) - reached)
            seen: List[str] = []
            current = start
            while current not in seen:
                seen.append(current)
                current = self._nodes[current].parent_id
            cycle = seen[seen.index(current):]
            cut = min(cycle)
            parent_id = self._nodes[cut].parent_id
            self._nodes[parent_id].children.remove(cut)
            self._forced_roots.add(cut)
            self.anomalies.append(CyclicParentWarning(
                f"Parent cycle through {sorted(cycle)}, '{cut}' treated as root",
                subject=cut,
            ))
            logger.warning("Parent cycle broken", node_id=cut, cycle=sorted(cycle))
            reached = self._reachable()
    
    def _reachable(self) -> Set[str]:
        reached: Set[str] = set()
        stack = [n.id for n in self.roots()]
        while stack:
            node_id = stack.pop()
            if node_id in reached:
                continue
            reached.add(node_id)
            stack.extend(self._nodes[node_id].children)
        return reached
    
    def assign_product(self, product_id: str, node_id: str) -> None:
        """Place a product directly on a node"""
        self[node_id].direct_product_ids.add(product_id)
    
    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------
    
    def __len__(self) -> int:
        return len(self._nodes)
    
    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes
    
    def __iter__(self) -> Iterator[TaxonomyNode]:
        for node_id in sorted(self._nodes):
            yield self._nodes[node_id]
    
    def __getitem__(self, node_id: str) -> TaxonomyNode:
        return self._nodes[node_id]
    
    def get(self, node_id: str) -> Optional[TaxonomyNode]:
        return self._nodes.get(node_id)
    
    def find_by_path(self, category_path: str) -> Optional[TaxonomyNode]:
        """Look up a node by any spelling of its category string"""
        segments = split_category_path(category_path)
        if not segments:
            return None
        node = self._nodes.get(node_id_for(segments))
        if node is not None and self._keys[node.id] == _chain_key(segments):
            return node
        return None
    
    def effective_parent_id(self, node_id: str) -> Optional[str]:
        """Parent id as used for traversal: None for roots, dangling and cycle-cut nodes"""
        node = self._nodes[node_id]
        if node.parent_id is None or node_id in self._forced_roots:
            return None
        if node.parent_id not in self._nodes:
            return None
        return node.parent_id
    
    def parent_of(self, node_id: str) -> Optional[TaxonomyNode]:
        parent_id = self.effective_parent_id(node_id)
        return self._nodes[parent_id] if parent_id is not None else None
    
    def children_of(self, node_id: str) -> List[TaxonomyNode]:
        return [self._nodes[c] for c in self._nodes[node_id].children]
    
    def roots(self) -> List[TaxonomyNode]:
        """Nodes without an effective parent, sorted by id"""
        return [n for n in self if self.effective_parent_id(n.id) is None]
    
    def ancestors_of(self, node_id: str) -> List[TaxonomyNode]:
        """Node followed by its parent chain up to the root"""
        chain = [self._nodes[node_id]]
        parent_id = self.effective_parent_id(node_id)
        while parent_id is not None:
            chain.append(self._nodes[parent_id])
            parent_id = self.effective_parent_id(parent_id)
        return chain
    
    def descendants_of(self, node_id: str) -> List[TaxonomyNode]:
        """All nodes below ``node_id`` in pre-order, excluding the node itself"""
        result: List[TaxonomyNode] = []
        stack = list(reversed(self._nodes[node_id].children))
        while stack:
            node = self._nodes[stack.pop()]
            result.append(node)
            stack.extend(reversed(node.children))
        return result
    
    def peers_of(self, node_id: str) -> List[TaxonomyNode]:
        """All nodes at the same depth, including the node itself"""
        depth = self._nodes[node_id].depth
        return self.nodes_at_depth(depth)
    
    def nodes_at_depth(self, depth: int) -> List[TaxonomyNode]:
        return [n for n in self if n.depth == depth]
    
    def post_order(self, root_id: Optional[str] = None) -> List[str]:
        """
        Node ids with every child before its parent.
        
        Args:
            root_id: Limit to one subtree; defaults to the whole forest
        """
        roots = [root_id] if root_id is not None else [n.id for n in self.roots()]
        order: List[str] = []
        for root in roots:
            stack: List[Tuple[str, bool]] = [(root, False)]
            while stack:
                node_id, expanded = stack.pop()
                if expanded:
                    order.append(node_id)
                    continue
                stack.append((node_id, True))
                for child_id in reversed(self._nodes[node_id].children):
                    stack.append((child_id, False))
        return order
    
    @property
    def max_depth(self) -> int:
        return max((n.depth for n in self._nodes.values()), default=-1)
