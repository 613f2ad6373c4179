"""Decide which top-level threads to materialize for a scroll position.

Threads far outside the viewport are replaced by two spacers whose heights
add up to the heights of the threads they stand in for.
"""

from collections.abc import Mapping

from annothread.models import ThreadDimensions, ThreadNode, VisibleThreads

THREAD_DIMENSION_DEFAULTS = ThreadDimensions()


def calculate_visible_threads(
    threads: list[ThreadNode],
    thread_heights: Mapping[str, float],
    scroll_pos: float,
    window_height: float,
    dimensions: ThreadDimensions = THREAD_DIMENSION_DEFAULTS,
) -> VisibleThreads:
    """Split `threads` into on-screen threads and upper/lower spacer heights.

    Threads without a measured height use `dimensions.default_height`. A
    thread is above the viewport if its bottom edge is above
    `scroll_pos - margin_above`, and below it if its top edge is at or past
    `scroll_pos + window_height + margin_below`.
    """
    visible: list[ThreadNode] = []
    total_height = 0.0
    offscreen_upper = 0.0
    offscreen_lower = 0.0

    for thread in threads:
        height = thread_heights.get(thread.id) or dimensions.default_height

        if total_height + height < scroll_pos - dimensions.margin_above:
            offscreen_upper += height
        elif total_height < scroll_pos + window_height + dimensions.margin_below:
            visible.append(thread)
        else:
            offscreen_lower += height
        total_height += height

    return VisibleThreads(
        visible_threads=visible,
        offscreen_upper_height=offscreen_upper,
        offscreen_lower_height=offscreen_lower,
    )
