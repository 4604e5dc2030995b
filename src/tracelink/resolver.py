"""Build relationship maps from record snapshots."""

from collections.abc import Iterable, Mapping, Sequence

from tracelink.models import RelationshipMap, Resource


def unique_ids(ids: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    result = []
    for item in ids:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


def resolve(records: Sequence[Resource]) -> RelationshipMap:
    """Map each record id to a copy of its linked ids.

    Missing ``linked_ids`` become an empty list and repeated ids keep their
    first position. If two records share an id, the later one wins.
    """
    mapping: RelationshipMap = {}
    for record in records:
        mapping[record.id] = unique_ids(record.linked_ids or [])
    return mapping


def invert(mapping: Mapping[str, Sequence[str]]) -> RelationshipMap:
    """Derive the reverse direction, e.g. test case id -> bug ids."""
    inverse: RelationshipMap = {}
    for source_id, target_ids in mapping.items():
        for target_id in target_ids:
            sources = inverse.setdefault(target_id, [])
            if source_id not in sources:
                sources.append(source_id)
    return inverse


def linked_records(ids: Sequence[str], records: Iterable[Resource]) -> list[Resource]:
    """Return the records for ``ids`` in link order, skipping unknown ids."""
    by_id = {record.id: record for record in records}
    return [by_id[item] for item in ids if item in by_id]


def diff_links(current: Sequence[str], desired: Iterable[str]) -> tuple[list[str], list[str]]:
    """Compute which ids must be added and removed to go from current to desired."""
    desired_list = unique_ids(desired)
    to_add = [item for item in desired_list if item not in current]
    to_remove = [item for item in current if item not in desired_list]
    return to_add, to_remove
