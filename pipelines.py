"""
Aggregation pipelines for the denormalized list views.

The builders only return pipeline stages; callers run them with
``collection.aggregate(pipeline)`` so each view is one server-side round trip.
"""


def lookup_stage(related_collection: str, local_field: str, display_field: str) -> dict:
    # join the related documents into the local field, keeping only the display field
    return {
        "$lookup": {
            "from": related_collection,
            "localField": local_field,
            "foreignField": "_id",
            "as": local_field,
            "pipeline": [{"$project": {display_field: 1}}],
        }
    }


def collapse_stage(local_field: str) -> dict:
    # references are one-to-one, so keep the first joined document (absent if none matched)
    return {"$set": {local_field: {"$first": f"${local_field}"}}}


def list_with_relation_filter(related_collection: str, local_field: str, display_field: str, filter_value=None) -> list[dict]:
    """
    Build the reference -> join -> filter -> collapse pipeline.

    Documents keep natural storage order. When ``filter_value`` is None the
    filter stage is left out and every document is returned.
    """
    pipeline = [lookup_stage(related_collection, local_field, display_field)]
    if filter_value is not None:
        # exact, case-sensitive match on the joined display field
        pipeline.append({"$match": {f"{local_field}.{display_field}": filter_value}})
    pipeline.append(collapse_stage(local_field))
    return pipeline


def find_one_with_relation(name: str, related_collection: str, local_field: str, display_field: str) -> list[dict]:
    # first document with the given name, relation populated and the name itself hidden
    return [
        {"$match": {"name": name}},
        {"$limit": 1},
        lookup_stage(related_collection, local_field, display_field),
        collapse_stage(local_field),
        {"$project": {"name": 0}},
    ]


def group_totals(group_field: str, sum_field: str, sort_desc: bool = True, limit: int | None = None) -> list[dict]:
    """
    Group documents by ``group_field``, summing ``sum_field`` and counting members.

    Each output row looks like ``{group_field: ..., "total<SumField>": ..., "count": ...}``.
    Rows are ordered by the total (ties by group value ascending) and optionally limited.
    """
    total_field = "total" + sum_field[:1].upper() + sum_field[1:]
    pipeline = [
        {
            "$group": {
                "_id": f"${group_field}",
                total_field: {"$sum": f"${sum_field}"},
                "count": {"$sum": 1},
            }
        },
        {"$project": {"_id": 0, group_field: "$_id", total_field: 1, "count": 1}},
        {"$sort": {total_field: -1 if sort_desc else 1, group_field: 1}},
    ]
    if limit is not None:
        pipeline.append({"$limit": limit})
    return pipeline
