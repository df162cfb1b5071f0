from models.users import DEFAULT_TAB_ORDER
from utils.errors import BadRequest

VALID_TABS = list(DEFAULT_TAB_ORDER)


def validate_tab_order(tab_order):
    if not isinstance(tab_order, list):
        raise BadRequest("tabOrder must be a list")
    invalid = [tab for tab in tab_order if tab not in VALID_TABS]
    if invalid:
        raise BadRequest("Invalid tab names in tabOrder", details=invalid)
    if len(set(tab_order)) != len(tab_order):
        raise BadRequest("Duplicate tab names in tabOrder")
    return tab_order


def move_tab(tab_order, dragged, target):
    """Drag `dragged` onto `target`: remove it, then insert at target's index."""
    if dragged not in tab_order or target not in tab_order:
        raise BadRequest("Unknown tab", details=[t for t in (dragged, target) if t not in tab_order])
    if dragged == target:
        return list(tab_order)

    new_order = list(tab_order)
    target_index = new_order.index(target)
    new_order.remove(dragged)
    new_order.insert(target_index, dragged)
    return new_order
