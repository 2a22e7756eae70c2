"""
Commitment tree for access-set membership.

A fixed-depth binary Merkle tree over identity commitments. Leaves are
4-element digests used as-is; every internal node is ``two_to_one(left,
right)``. The tree exposes a cap: the ``2**cap_height`` nodes at level
``depth - cap_height``. Cap plus depth is the tree's public commitment, and a
membership path stops at the cap instead of the root.

The tree is immutable. Adding members means building a new tree.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import cbor2

from .config import MAX_TREE_DEPTH
from .exceptions import IndexOutOfRange, SerializationError
from .field import Digest, ZERO_DIGEST, to_digest
from .poseidon import identity_commitment, two_to_one

# Padding leaf for unused slots. No secret is known to commit to it.
EMPTY_LEAF: Digest = ZERO_DIGEST


@dataclass(frozen=True)
class MerkleProof:
    """Sibling digests from a leaf up to (not including) the cap."""

    siblings: Tuple[Digest, ...]

    def __len__(self) -> int:
        return len(self.siblings)


class CommitmentTree:
    """
    Fixed-depth Merkle tree of identity commitments.

    Args:
        leaves: Ordered identity commitments; position is the member index
        cap_height: Height of the cap (0 means the cap is just the root)
        max_depth: Largest depth the tree may grow to

    Raises:
        ValueError: If leaves is empty or exceeds 2**max_depth, or the cap
            height is out of range

    Example:
        >>> tree = CommitmentTree([identity_commitment(s) for s in secrets])
        >>> proof = tree.path(3)
        >>> assert tree.verify_path(tree.leaf(3), 3, proof)
    """

    def __init__(
        self,
        leaves: Iterable[Sequence[int]],
        cap_height: int = 0,
        *,
        max_depth: int = MAX_TREE_DEPTH,
    ):
        leaves = [to_digest(leaf, f"leaves[{i}]") for i, leaf in enumerate(leaves)]
        if not leaves:
            raise ValueError("Cannot build tree with zero leaves")
        if not 1 <= max_depth <= MAX_TREE_DEPTH:
            raise ValueError(f"max_depth must be in [1, {MAX_TREE_DEPTH}]")
        if len(leaves) > 2**max_depth:
            raise ValueError(
                f"{len(leaves)} leaves exceed the capacity of depth {max_depth}"
            )
        if not 0 <= cap_height <= max_depth:
            raise ValueError(f"cap_height must be in [0, {max_depth}]")

        depth = max((len(leaves) - 1).bit_length(), cap_height)

        self._leaf_count = len(leaves)
        self._depth = depth
        self._cap_height = cap_height

        level: List[Digest] = leaves + [EMPTY_LEAF] * (2**depth - len(leaves))
        layers = [level]
        while len(level) > 1:
            level = [
                two_to_one(level[i], level[i + 1]) for i in range(0, len(level), 2)
            ]
            layers.append(level)
        self._layers = layers

    @classmethod
    def from_secrets(
        cls, secrets: Iterable[Sequence[int]], cap_height: int = 0, **kwargs
    ) -> "CommitmentTree":
        return cls([identity_commitment(s) for s in secrets], cap_height, **kwargs)

    # ------------------------------------------------------------------
    # Public commitment
    # ------------------------------------------------------------------

    @property
    def depth(self) -> int:
        return self._depth

    @property
    def cap_height(self) -> int:
        return self._cap_height

    @property
    def leaf_count(self) -> int:
        return self._leaf_count

    @property
    def root(self) -> Digest:
        return self._layers[-1][0]

    @property
    def cap(self) -> Tuple[Digest, ...]:
        return tuple(self._layers[self._depth - self._cap_height])

    @property
    def path_length(self) -> int:
        return self._depth - self._cap_height

    @property
    def leaves(self) -> Tuple[Digest, ...]:
        return tuple(self._layers[0][: self._leaf_count])

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    def _check_index(self, index: int) -> None:
        if isinstance(index, bool) or not isinstance(index, int):
            raise TypeError(f"index must be an int, got {type(index).__name__}")
        if index < 0 or index >= self._leaf_count:
            raise IndexOutOfRange(
                f"index {index} out of range for {self._leaf_count} leaves"
            )

    def leaf(self, index: int) -> Digest:
        self._check_index(index)
        return self._layers[0][index]

    def path(self, index: int) -> MerkleProof:
        """
        Authentication path from leaf ``index`` to the cap.

        Raises:
            IndexOutOfRange: If index >= leaf_count
        """
        self._check_index(index)
        siblings = []
        position = index
        for level in range(self.path_length):
            siblings.append(self._layers[level][position ^ 1])
            position >>= 1
        return MerkleProof(tuple(siblings))

    def verify_path(self, leaf: Sequence[int], index: int, proof: MerkleProof) -> bool:
        """Native check that ``leaf`` sits at ``index`` under this tree's cap."""
        if len(proof) != self.path_length or not 0 <= index < 2**self._depth:
            return False
        current = to_digest(leaf, "leaf")
        position = index
        for sibling in proof.siblings:
            if position & 1:
                current = two_to_one(sibling, current)
            else:
                current = two_to_one(current, sibling)
            position >>= 1
        return current == self.cap[position]

    def index_of(self, commitment: Sequence[int]) -> Optional[int]:
        """First index holding ``commitment``, or None."""
        commitment = to_digest(commitment, "commitment")
        for index, leaf in enumerate(self._layers[0][: self._leaf_count]):
            if leaf == commitment:
                return index
        return None

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Leaves and cap height; internal nodes are recomputed on load."""
        return {
            "leaves": [list(leaf) for leaf in self.leaves],
            "cap_height": self._cap_height,
        }

    @classmethod
    def from_dict(
        cls, data: Dict[str, Any], *, max_depth: int = MAX_TREE_DEPTH
    ) -> "CommitmentTree":
        try:
            return cls(data["leaves"], data["cap_height"], max_depth=max_depth)
        except (KeyError, TypeError, ValueError) as e:
            raise SerializationError(f"Malformed commitment tree: {e}") from e

    def to_bytes(self) -> bytes:
        return cbor2.dumps(self.to_dict())

    @classmethod
    def from_bytes(cls, data: bytes, **kwargs) -> "CommitmentTree":
        try:
            decoded = cbor2.loads(data)
        except Exception as e:
            raise SerializationError(f"Failed to decode commitment tree: {e}") from e
        return cls.from_dict(decoded, **kwargs)

    def __len__(self) -> int:
        return self._leaf_count

    def __repr__(self) -> str:
        return (
            f"CommitmentTree(leaf_count={self._leaf_count}, depth={self._depth}, "
            f"cap_height={self._cap_height})"
        )
