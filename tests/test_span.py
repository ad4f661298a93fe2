import random

import pytest

from hyprfinity.models import Monitor, NoMonitorsError, Span
from hyprfinity.span import compute_span, describe_monitors


def test_two_monitors_left_of_origin():
    monitors = [Monitor(x=-1920, y=0, width=1920, height=1080), Monitor(x=0, y=0, width=2560, height=1440)]
    assert compute_span(monitors) == Span(origin_x=-1920, origin_y=0, width=4480, height=1440)


def test_single_monitor():
    assert compute_span([Monitor(100, 50, 1920, 1080)]) == Span(100, 50, 1920, 1080)


def test_stacked_monitors():
    monitors = [Monitor(0, 1080, 3440, 1440, "DP-1"), Monitor(0, 0, 1920, 1080, "HDMI-A-1")]
    assert compute_span(monitors) == Span(0, 0, 3440, 2520)


def test_empty_list_is_an_error():
    with pytest.raises(NoMonitorsError):
        compute_span([])


def test_span_is_the_tightest_cover():
    rng = random.Random(1234)
    for _ in range(50):
        monitors = [
            Monitor(rng.randint(-4000, 4000), rng.randint(-2000, 2000), rng.randint(1, 4000), rng.randint(1, 2000))
            for _ in range(rng.randint(1, 4))
        ]
        span = compute_span(monitors)
        for m in monitors:
            assert span.origin_x <= m.x and m.x + m.width <= span.origin_x + span.width
            assert span.origin_y <= m.y and m.y + m.height <= span.origin_y + span.height
        # every edge touches a monitor
        assert any(m.x == span.origin_x for m in monitors)
        assert any(m.y == span.origin_y for m in monitors)
        assert any(m.x + m.width == span.origin_x + span.width for m in monitors)
        assert any(m.y + m.height == span.origin_y + span.height for m in monitors)


def test_describe_monitors():
    monitors = [Monitor(-1920, 0, 1920, 1080, "HDMI-A-1"), Monitor(0, 0, 2560, 1440)]
    assert describe_monitors(monitors) == "HDMI-A-1:1920x1080@-1920,0, unknown:2560x1440@0,0"
