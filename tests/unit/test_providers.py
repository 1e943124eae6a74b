"""Tests for provider descriptors and resolution."""

from __future__ import annotations

import pytest

from chatwoot_relay.models import AICallConfig
from chatwoot_relay.providers import (
    DEFAULT_PROVIDER,
    PROVIDERS,
    AzureOpenAIProvider,
    BaiduProvider,
    OpenAIProvider,
    QwenProvider,
    ZhipuProvider,
    resolve,
)


def _config(**kwargs: object) -> AICallConfig:
    defaults: dict[str, object] = {"system_prompt": "be nice"}
    defaults.update(kwargs)
    return AICallConfig(**defaults)  # type: ignore[arg-type]


class TestResolve:
    def test_explicit_name_wins_over_url(self) -> None:
        provider = resolve("qwen", "https://my-resource.openai.azure.com/x")
        assert isinstance(provider, QwenProvider)

    def test_explicit_name_is_case_insensitive(self) -> None:
        assert isinstance(resolve("  Zhipu "), ZhipuProvider)

    def test_unknown_name_falls_back_to_url_detection(self) -> None:
        provider = resolve("no-such-vendor", "https://aip.baidubce.com/rpc/2.0/chat")
        assert isinstance(provider, BaiduProvider)

    @pytest.mark.parametrize(
        ("url", "expected"),
        [
            ("https://X.OpenAI.Azure.com/openai/deployments/d/chat", AzureOpenAIProvider),
            ("https://open.bigmodel.cn/api/paas/v4/chat/completions", ZhipuProvider),
            ("https://aip.baidubce.com/rpc/2.0/ai_custom", BaiduProvider),
            ("https://dashscope.aliyuncs.com/api/v1/services", QwenProvider),
            ("https://llm.internal.example/v1/chat/completions", OpenAIProvider),
        ],
    )
    def test_url_detection(self, url: str, expected: type) -> None:
        assert isinstance(resolve(None, url), expected)

    def test_azure_checked_before_later_hints(self) -> None:
        url = "https://proxy.openai.azure.com/?upstream=dashscope.aliyuncs.com"
        assert isinstance(resolve(None, url), AzureOpenAIProvider)

    def test_default_when_nothing_given(self) -> None:
        assert resolve() is DEFAULT_PROVIDER
        assert isinstance(DEFAULT_PROVIDER, OpenAIProvider)

    def test_resolution_is_pure(self) -> None:
        first = resolve("unknown", "https://open.bigmodel.cn/api")
        for _ in range(5):
            assert resolve("unknown", "https://open.bigmodel.cn/api") is first


class TestDescriptorImmutability:
    def test_cannot_mutate_descriptor(self) -> None:
        with pytest.raises(AttributeError):
            PROVIDERS["openai"].base_url = "https://evil.example"  # type: ignore[misc]

    def test_registry_is_read_only(self) -> None:
        with pytest.raises(TypeError):
            PROVIDERS["custom"] = OpenAIProvider()  # type: ignore[index]


class TestOpenAIProvider:
    def test_format_request_uses_defaults(self) -> None:
        body = OpenAIProvider().format_request("hello", _config())
        assert body["model"] == "gpt-3.5-turbo"
        assert body["messages"] == [
            {"role": "system", "content": "be nice"},
            {"role": "user", "content": "hello"},
        ]
        assert body["max_tokens"] == 1000
        assert body["temperature"] == 0.7

    def test_format_request_passes_through_config(self) -> None:
        body = OpenAIProvider().format_request(
            "hello", _config(model="gpt-4o", max_tokens=50_000, temperature=3.5),
        )
        assert body["model"] == "gpt-4o"
        assert body["max_tokens"] == 50_000
        assert body["temperature"] == 3.5

    def test_parse_choices(self) -> None:
        data = {"choices": [{"message": {"content": "answer"}}]}
        assert OpenAIProvider().parse_response(data) == "answer"

    @pytest.mark.parametrize("field", ["response", "text", "content"])
    def test_parse_flat_fallback_fields(self, field: str) -> None:
        assert OpenAIProvider().parse_response({field: "flat"}) == "flat"

    @pytest.mark.parametrize("data", [{}, [], "text", None, {"choices": []}])
    def test_parse_returns_none_for_unusable_shapes(self, data: object) -> None:
        assert OpenAIProvider().parse_response(data) is None

    def test_bearer_headers(self) -> None:
        headers = OpenAIProvider().build_headers("tok")
        assert headers["Authorization"] == "Bearer tok"
        assert headers["Content-Type"] == "application/json"


class TestVendorShapes:
    def test_azure_omits_model_and_uses_api_key_header(self) -> None:
        provider = AzureOpenAIProvider()
        assert "model" not in provider.format_request("hi", _config())
        headers = provider.build_headers("secret")
        assert headers["api-key"] == "secret"
        assert "Authorization" not in headers
        assert provider.base_url == ""

    def test_azure_ignores_flat_fields(self) -> None:
        assert AzureOpenAIProvider().parse_response({"text": "nope"}) is None

    def test_baidu_merges_system_prompt(self) -> None:
        body = BaiduProvider().format_request("question", _config(max_tokens=10))
        assert body["messages"] == [{"role": "user", "content": "be nice\n\nquestion"}]
        assert body["max_output_tokens"] == 10
        assert BaiduProvider().parse_response({"result": "ernie says"}) == "ernie says"

    def test_qwen_nests_input_and_parameters(self) -> None:
        body = QwenProvider().format_request("q", _config(temperature=0.2))
        assert body["model"] == "qwen-turbo"
        assert body["input"]["messages"][1] == {"role": "user", "content": "q"}
        assert body["parameters"] == {"max_tokens": 1000, "temperature": 0.2}

    def test_qwen_parses_text_then_choices(self) -> None:
        provider = QwenProvider()
        assert provider.parse_response({"output": {"text": "t"}}) == "t"
        nested = {"output": {"choices": [{"message": {"content": "c"}}]}}
        assert provider.parse_response(nested) == "c"
        assert provider.parse_response({"output": None}) is None

    def test_zhipu_default_model(self) -> None:
        assert ZhipuProvider().format_request("x", _config())["model"] == "glm-4"

    def test_describe_lists_supported_models(self) -> None:
        info = QwenProvider().describe()
        assert info["key"] == "qwen"
        assert info["supported_models"] == ["qwen-turbo", "qwen-plus", "qwen-max"]
