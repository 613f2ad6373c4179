"""User-set filters and the focus filter configured by the embedding page.

The focus filter sits beneath user-set filters: when both name the same
facet, the user-set value wins.
"""

from pydantic import BaseModel, ConfigDict, Field

from annothread.models import FocusConfig, FocusUser


class FilterOption(BaseModel):
    value: str
    display: str


class FilterState(BaseModel):
    model_config = ConfigDict(frozen=True)

    filters: dict[str, FilterOption] = Field(default_factory=dict)
    focus_active: bool = False
    focus_filters: dict[str, FilterOption] = Field(default_factory=dict)


def is_valid_focus_config(config: FocusConfig) -> bool:
    return bool(config.user and (config.user.username or config.user.user_id))


def focus_filters_from_config(config: FocusConfig) -> dict[str, FilterOption]:
    if not is_valid_focus_config(config):
        return {}
    value = config.user.username or config.user.user_id or ""
    return {"user": FilterOption(value=value, display=config.user.display_name or value)}


def initial_state(config: FocusConfig) -> FilterState:
    """Focus mode starts active whenever a valid focus config is supplied."""
    return FilterState(
        focus_active=is_valid_focus_config(config),
        focus_filters=focus_filters_from_config(config),
    )


def change_focus_mode_user(state: FilterState, user: FocusUser) -> FilterState:
    config = FocusConfig(user=user)
    if is_valid_focus_config(config):
        return state.model_copy(
            update={"focus_active": True, "focus_filters": focus_filters_from_config(config)}
        )
    return state.model_copy(update={"focus_active": False})


def toggle_focus_mode(state: FilterState, active: bool | None = None) -> FilterState:
    return state.model_copy(
        update={"focus_active": (not state.focus_active) if active is None else active}
    )


def set_filter(state: FilterState, name: str, option: FilterOption) -> FilterState:
    """Set a user filter. An empty value removes it.

    A user filter on a facet the focus filter also sets turns focus mode off.
    """
    focus_active = state.focus_active and name not in state.focus_filters
    filters = {**state.filters, name: option}
    if option.value == "":
        del filters[name]
    return state.model_copy(update={"filters": filters, "focus_active": focus_active})


def clear_filters(state: FilterState) -> FilterState:
    return state.model_copy(update={"filters": {}, "focus_active": False})


def effective_filters(state: FilterState) -> dict[str, str]:
    """Facet -> value for every filter currently applied."""
    applied = {**state.focus_filters, **state.filters} if state.focus_active else state.filters
    return {name: option.value for name, option in applied.items()}
