from .arrival_projection import (
    ProjectedArrival,
    project_arrivals,
    resolve_arrival,
    direction_id_for_token,
    direction_label_for_token,
)

__all__ = [
    "ProjectedArrival",
    "project_arrivals",
    "resolve_arrival",
    "direction_id_for_token",
    "direction_label_for_token",
]
