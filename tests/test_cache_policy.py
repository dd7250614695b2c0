"""Tests for cache policies and cache keys."""

import pytest

from conduit.app.core.config import settings
from conduit.app.schemas import CacheSettings, Params
from conduit.app.services.cache_policy import (
    CacheMode,
    CachePolicy,
    build_cache_key,
    normalize_cache,
)


class TestNormalizeCache:
    """Test that every accepted cache form normalises the same way."""

    @pytest.mark.parametrize(
        "value",
        ["simple", {"mode": "simple"}, CacheSettings(mode="simple")],
    )
    def test_equivalent_forms(self, value):
        assert normalize_cache(value) == CacheSettings(mode="simple")

    def test_camel_case_dict(self):
        assert normalize_cache({"mode": "semantic", "maxAge": 30}).max_age == 30

    def test_none(self):
        assert normalize_cache(None) is None


class TestCachePolicy:
    """Test effective cache policies."""

    def test_disabled_without_settings(self):
        policy = CachePolicy.from_settings(None)

        assert policy.enabled is False
        assert policy.mode is None

    def test_default_ttl(self):
        policy = CachePolicy.from_settings("simple")

        assert policy.enabled
        assert policy.ttl == settings.cache_default_ttl
        assert policy.known_mode == CacheMode.SIMPLE

    def test_explicit_ttl(self):
        policy = CachePolicy.from_settings({"mode": "semantic", "maxAge": 60})

        assert policy.ttl == 60
        assert policy.known_mode == CacheMode.SEMANTIC

    def test_zero_ttl_disables(self):
        assert not CachePolicy.from_settings(CacheSettings(mode="simple", max_age=0)).enabled

    def test_unknown_mode_kept(self):
        policy = CachePolicy.from_settings("vector")

        assert policy.mode == "vector"
        assert policy.known_mode is None


class TestBuildCacheKey:
    """Test cache key derivation."""

    def test_key_format(self):
        key = build_cache_key(Params(model="gpt-4o"))

        assert key.startswith(f"{settings.cache_key_prefix}:cache:")
        assert len(key.rsplit(":", 1)[1]) == 64

    def test_key_ignores_field_order(self):
        first = Params.model_validate({"model": "m", "temperature": 0.1, "seed": 3})
        second = Params.model_validate({"seed": 3, "temperature": 0.1, "model": "m"})

        assert build_cache_key(first) == build_cache_key(second)

    def test_key_covers_extra_fields(self):
        plain = Params.model_validate({"model": "m"})
        extended = Params.model_validate({"model": "m", "repetition_penalty": 1.2})

        assert build_cache_key(plain) != build_cache_key(extended)

    def test_key_depends_on_mode(self):
        params = Params(model="m")

        assert build_cache_key(params, CacheMode.SIMPLE) != build_cache_key(params, "semantic")

    def test_custom_prefix(self):
        assert build_cache_key(Params(model="m"), prefix="tenant-a").startswith("tenant-a:cache:")
