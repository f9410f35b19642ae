"""Step partitioner: group a rendered score's notes into ordered harmonic steps.

A step is:

1. a ``<g class="chord">`` group (atomic), or
2. a standalone ``<g class="note">`` group that is NOT inside a chord.

Steps are ordered by document order (position in a pre-order walk of the
SVG tree), never by x-coordinate: geometry-based grouping merges or splits
steps whenever noteheads share or overlap an x-position.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from xml.etree.ElementTree import Element

from harmonyviewer.pitch_resolver import AttributeLookup, resolve_pitches
from harmonyviewer.score_models import NoteHead, Step

logger = logging.getLogger(__name__)

CHORD_CLASS = "chord"
NOTE_CLASS = "note"
NOTEHEAD_CLASS = "notehead"


def local_name(element: Element) -> str:
    """Tag name without its ``{namespace}`` prefix."""
    tag = element.tag if isinstance(element.tag, str) else ""
    return tag.rsplit("}", 1)[-1]


def class_list(element: Element) -> list[str]:
    return (element.get("class") or "").split()


def element_id(element: Element) -> str | None:
    return element.get("id") or element.get("data-id")


class ScoreTree:
    """
    Document-order index and parent links over a rendered SVG tree.

    ElementTree has no parent pointers, so both are built in one pre-order
    pass. The position of each element in that pass is a total order.
    """

    def __init__(self, root: Element) -> None:
        self.root = root
        self._order: dict[Element, int] = {}
        self._parents: dict[Element, Element] = {}
        for position, element in enumerate(root.iter()):
            self._order[element] = position
            for child in element:
                self._parents[child] = element

    def position(self, element: Element) -> int:
        return self._order[element]

    def ancestors(self, element: Element) -> Iterator[Element]:
        parent = self._parents.get(element)
        while parent is not None:
            yield parent
            parent = self._parents.get(parent)

    def closest(self, element: Element, class_name: str) -> Element | None:
        """Nearest ``<g>`` ancestor carrying *class_name*, like DOM ``closest()``."""
        for ancestor in self.ancestors(element):
            if local_name(ancestor) == "g" and class_name in class_list(ancestor):
                return ancestor
        return None

    def groups(self, class_name: str) -> list[Element]:
        return [
            element
            for element in self.root.iter()
            if local_name(element) == "g" and class_name in class_list(element)
        ]


def _noteheads(tree: ScoreTree, grouping: Element) -> list[NoteHead]:
    """
    Collect the notehead glyphs of one grouping, in document order.

    A ``<use>`` counts only when its nearest classed ancestor group is a
    notehead group; glyphs nested in decorative sub-groups are skipped.
    """
    heads: list[NoteHead] = []
    seen: set[Element] = set()
    for element in grouping.iter():
        if local_name(element) != "use" or element in seen:
            continue
        owner = next((a for a in tree.ancestors(element) if class_list(a)), None)
        if owner is None or NOTEHEAD_CLASS not in class_list(owner):
            continue
        seen.add(element)
        note = tree.closest(element, NOTE_CLASS)
        heads.append(NoteHead(element=element, note_id=element_id(note) if note is not None else None))
    return heads


def partition(score_root: Element) -> list[list[NoteHead]]:
    """
    Partition a rendered score into ordered groups of notehead handles.

    Groupings without any notehead (e.g. empty chords) are dropped. The
    result depends only on the tree, so repeated calls on the same score
    yield identical boundaries and membership.
    """
    tree = ScoreTree(score_root)

    chords = tree.groups(CHORD_CLASS)
    standalone_notes = [
        note for note in tree.groups(NOTE_CLASS) if tree.closest(note, CHORD_CLASS) is None
    ]
    groupings = sorted(chords + standalone_notes, key=tree.position)

    steps: list[list[NoteHead]] = []
    for grouping in groupings:
        heads = _noteheads(tree, grouping)
        if heads:
            steps.append(heads)
        else:
            logger.debug("Skipping grouping %s without noteheads", element_id(grouping))
    return steps


def build_steps(score_root: Element, toolkit: AttributeLookup) -> list[Step]:
    """Partition the score and resolve each step's pitches (once per score load)."""
    return [
        Step(index=position, noteheads=tuple(heads), pitches=resolve_pitches(heads, toolkit))
        for position, heads in enumerate(partition(score_root), start=1)
    ]
