"""Tests for ExampleClientAdapter (template/reference adapter)."""

import pytest

from aegis.analysis.example_client_adapter import ExampleClientAdapter


class TestExampleClientAdapter:
    @pytest.mark.anyio
    async def test_returns_fixed_text(self) -> None:
        adapter = ExampleClientAdapter()
        result = await adapter.create_completion(
            model="any",
            prompt="p",
            filename="a.png",
            content_b64="",
            mime_type="image/png",
        )
        assert result == ExampleClientAdapter.DEFAULT_RESPONSE

    @pytest.mark.anyio
    async def test_ignores_input_parameters(self) -> None:
        adapter = ExampleClientAdapter()
        r1 = await adapter.create_completion(
            model="a", prompt="p1", filename="x", content_b64="AA==", mime_type="text/plain"
        )
        r2 = await adapter.create_completion(
            model="b", prompt="p2", filename="y", content_b64="", mime_type="image/png"
        )
        assert r1 == r2
