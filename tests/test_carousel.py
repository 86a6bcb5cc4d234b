"""
Tests for the promotion banner carousel.
Run from project root: pytest tests/test_carousel.py -v
"""

import pytest
import asyncio
import sys
import os

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from src.services.carousel import IDLE, NEXT, PREV, TRANSITIONING, PromotionCarousel


@pytest.fixture
def carousel(events, clock):
    return PromotionCarousel(events, settle_delay=0.7, autoplay_interval=5.0, clock=clock)


class TestAdvance:
    """Test manual navigation."""

    def test_prev_wraps_from_zero(self, carousel):
        assert carousel.advance(PREV)
        assert carousel.current_index == 3
        assert carousel.direction == PREV

    def test_next_wraps_from_last(self, carousel, clock):
        for _ in range(4):
            assert carousel.advance(NEXT)
            clock.tick(1.0)
        assert carousel.current_index == 0

    def test_locked_while_transitioning(self, carousel, clock):
        """Two rapid advances move exactly one slide."""
        assert carousel.advance(NEXT)
        assert carousel.state == TRANSITIONING
        assert not carousel.advance(NEXT)
        assert carousel.current_index == 1
        clock.tick(0.7)
        assert carousel.state == IDLE
        assert carousel.advance(NEXT)
        assert carousel.current_index == 2

    def test_settle_releases_lock(self, carousel):
        carousel.advance(NEXT)
        carousel.settle()
        assert carousel.advance(NEXT)

    def test_no_entries(self, clock):
        empty = PromotionCarousel([], settle_delay=0.7, autoplay_interval=5.0, clock=clock)
        assert not empty.advance(NEXT)
        assert empty.current is None
        assert not empty.autoplay_active

    def test_bad_direction_is_ignored(self, carousel):
        assert not carousel.advance("sideways")
        assert not carousel.advance(None)
        assert carousel.current_index == 0
        assert carousel.state == IDLE

    def test_transition_style(self, carousel):
        carousel.advance(PREV)
        style = carousel.transition_style()
        assert style["direction"] == PREV
        assert style["enter"] == "slide-in-left"
        assert style["animating"] is True


class TestGoto:
    """Test direct index navigation."""

    def test_goto_current_is_noop(self, carousel):
        assert not carousel.goto_index(0)
        assert carousel.state == IDLE

    def test_goto_forward_and_back(self, carousel, clock):
        assert carousel.goto_index(2)
        assert carousel.direction == NEXT
        clock.tick(1.0)
        assert carousel.goto_index(1)
        assert carousel.direction == PREV

    def test_goto_out_of_range(self, carousel):
        assert not carousel.goto_index(4)
        assert not carousel.goto_index(-1)

    def test_goto_locked(self, carousel):
        carousel.advance(NEXT)
        assert not carousel.goto_index(3)
        assert carousel.current_index == 1

    def test_goto_coerces_index(self, carousel):
        assert carousel.goto_index("2")
        assert carousel.current_index == 2

    def test_goto_bad_index_is_ignored(self, carousel):
        assert not carousel.goto_index("two")
        assert not carousel.goto_index(None)
        assert carousel.current_index == 0
        assert carousel.state == IDLE


class TestAutoplay:
    """Test the autoplay timer."""

    def test_poll_fires_when_due(self, carousel, clock):
        assert carousel.autoplay_active
        assert not carousel.poll()
        clock.tick(5.0)
        assert carousel.poll()
        assert carousel.current_index == 1
        assert not carousel.poll()

    def test_single_entry_has_no_autoplay(self, events, clock):
        single = PromotionCarousel(events[:1], settle_delay=0.7, autoplay_interval=5.0, clock=clock)
        assert not single.autoplay_active
        clock.tick(60)
        assert not single.poll()

    def test_set_entries_restarts(self, carousel, clock, events):
        clock.tick(4.0)
        carousel.set_entries(events[:2])
        clock.tick(4.0)
        assert not carousel.poll()
        clock.tick(1.0)
        assert carousel.poll()

    def test_set_entries_resets_index(self, carousel, clock, events):
        carousel.goto_index(3)
        carousel.set_entries(events[:2])
        assert carousel.current_index == 0

    def test_close_stops_autoplay(self, carousel):
        carousel.close()
        assert not carousel.autoplay_active

    def test_async_run(self):
        """The cooperative loop advances on its own and stops on close()."""
        async def scenario():
            c = PromotionCarousel(list(range(100)), settle_delay=0.01, autoplay_interval=0.05)
            task = c.start()
            await asyncio.sleep(0.2)
            c.close()
            await asyncio.gather(task, return_exceptions=True)
            return c.current_index, task.done()

        index, stopped = asyncio.run(scenario())
        assert index > 0
        assert stopped

    def test_to_dict(self, carousel):
        data = carousel.to_dict()
        assert data["current_index"] == 0
        assert data["state"] == IDLE
        assert data["autoplay"] is True
        assert data["entries"][0]["abbreviation"] == "Weekend"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
