"""
Unit tests for the pygame -> action translation and the shared queue.
"""

import pygame
import pytest

from events import EventManager


@pytest.fixture(autouse=True)
def empty_queue():
    EventManager.clear()
    yield
    EventManager.clear()


def _key(etype, key):
    return pygame.event.Event(etype, key=key)


class TestTranslate:
    """Tests for keyboard translation."""

    @pytest.mark.parametrize("key,digit", [
        (pygame.K_0, "0"), (pygame.K_7, "7"), (pygame.K_KP3, "3"), (pygame.K_KP9, "9"),
    ])
    def test_digits(self, key, digit):
        EventManager.handle(_key(pygame.KEYDOWN, key))
        EventManager.handle(_key(pygame.KEYUP, key))
        assert EventManager.poll() == {"type": "key_down", "key": digit}
        assert EventManager.poll() == {"type": "key_up", "key": digit}

    @pytest.mark.parametrize("key", [pygame.K_RETURN, pygame.K_KP_ENTER])
    def test_enter(self, key):
        EventManager.handle(_key(pygame.KEYDOWN, key))
        EventManager.handle(_key(pygame.KEYUP, key))
        assert EventManager.poll() == {"type": "enter_down"}
        assert EventManager.poll() == {"type": "enter_up"}

    @pytest.mark.parametrize("key,action", [
        (pygame.K_ESCAPE, "quit"), (pygame.K_q, "quit"), (pygame.K_i, "toggle_overlay"),
        (pygame.K_f, "toggle_fullscreen"), (pygame.K_t, "travel"), (pygame.K_r, "return"),
    ])
    def test_shortcuts(self, key, action):
        EventManager.handle(_key(pygame.KEYDOWN, key))
        assert EventManager.poll() == {"type": action}

    def test_window_close(self):
        EventManager.handle(pygame.event.Event(pygame.QUIT))
        assert EventManager.poll() == {"type": "quit"}

    def test_unmapped_ignored(self):
        EventManager.handle(_key(pygame.KEYDOWN, pygame.K_z))
        EventManager.handle(_key(pygame.KEYUP, pygame.K_t))
        assert EventManager.poll() is None


class TestQueue:
    """Tests for the external injection path."""

    def test_fifo_order(self):
        EventManager.post({"type": "key", "key": "1"})
        EventManager.handle(_key(pygame.KEYDOWN, pygame.K_2))
        EventManager.post({"type": "enter"})
        assert [EventManager.poll()["type"] for _ in range(3)] == ["key", "key_down", "enter"]
        assert EventManager.poll() is None
