"""Tests for the in-memory artifact store."""

import pytest

from cropforge.artifacts import ArtifactStore


class TestArtifactStore:
    def test_mint_and_read(self):
        store = ArtifactStore()
        locator = store.mint(b"data")
        assert store.read(locator) == b"data"
        assert locator in store

    def test_locators_are_unique(self):
        store = ArtifactStore()
        assert store.mint(b"a") != store.mint(b"a")
        assert len(store) == 2

    def test_release_invalidates(self):
        store = ArtifactStore()
        locator = store.mint(b"data")
        store.release(locator)
        store.release(locator)
        with pytest.raises(KeyError):
            store.read(locator)
        assert locator not in store

    def test_clear(self):
        store = ArtifactStore()
        store.mint(b"a")
        store.clear()
        assert len(store) == 0
