"""Tests for the request contract schema."""

import json

import pytest
from pydantic import ValidationError

from conduit.app.schemas import (
    SYSTEM_MESSAGE_ROLES,
    CacheSettings,
    Config,
    ConfigMode,
    ContentBlockChunk,
    FullRequestBody,
    Message,
    MessageRole,
    Options,
    Params,
    ShortRequestBody,
    StrategyMode,
    Targets,
    Tool,
    ToolCall,
    dump_request_body,
    is_system_role,
    parse_request_body,
)


def full_body() -> dict:
    return {
        "config": {
            "strategy": {"mode": "fallback", "onStatusCodes": [429, 503]},
            "retry": {"attempts": 2, "onStatusCodes": [500]},
            "cache": {"mode": "simple", "maxAge": 120},
            "targets": [
                {
                    "name": "primary",
                    "provider": "openai",
                    "apiKey": "sk-test",
                    "overrideParams": {"model": "gpt-4o", "temperature": 0.2},
                },
                {
                    "name": "backup",
                    "provider": "azure-openai",
                    "resourceName": "res",
                    "deploymentId": "dep",
                    "apiVersion": "2024-02-01",
                },
            ],
        },
        "params": {
            "model": "gpt-4o-mini",
            "messages": [
                {"role": "system", "content": "Be brief."},
                {"role": "user", "content": [{"type": "text", "text": "Hi"}]},
            ],
            "max_tokens": 64,
        },
    }


class TestRequestBodyParsing:
    """Test full and short envelope parsing."""

    def test_full_form(self):
        body = parse_request_body(full_body())

        assert isinstance(body, FullRequestBody)
        assert body.shape == "full"
        assert body.config.strategy.mode == StrategyMode.FALLBACK
        assert body.config.targets[0].api_key == "sk-test"
        assert body.config.targets[0].override_params.model == "gpt-4o"
        assert body.config.targets[1].resource_name == "res"

    def test_short_form(self):
        body = parse_request_body(
            {
                "config": {"provider": "anthropic", "apiKey": "key", "cache": "simple"},
                "params": {"model": "claude-3-5-sonnet", "prompt": "Hello"},
            }
        )

        assert isinstance(body, ShortRequestBody)
        assert body.shape == "short"
        assert body.config.provider == "anthropic"
        assert body.config.cache == CacheSettings(mode="simple")

    def test_provider_with_multi_target_keys_is_full_form(self):
        body = parse_request_body(
            {
                "config": {"provider": "openai", "mode": "single", "options": [{"provider": "openai"}]},
                "params": {},
            }
        )

        assert isinstance(body, FullRequestBody)
        assert body.config.mode == ConfigMode.SINGLE

    def test_parse_from_json_string(self):
        body = parse_request_body(json.dumps(full_body()))

        assert isinstance(body, FullRequestBody)

    def test_round_trip(self):
        body = parse_request_body(full_body())

        reparsed = parse_request_body(json.dumps(dump_request_body(body)))

        assert reparsed == body

    def test_round_trip_keeps_explicit_null_extras(self):
        """Test that null-valued unknown keys survive serialize then parse."""
        data = full_body()
        data["params"]["custom_flag"] = None
        data["config"]["targets"][0]["overrideParams"]["vendor_option"] = None
        body = parse_request_body(data)

        dumped = dump_request_body(body)
        reparsed = parse_request_body(json.dumps(dumped))

        assert dumped["params"]["custom_flag"] is None
        assert dumped["config"]["targets"][0]["overrideParams"]["vendor_option"] is None
        assert reparsed.params.extra_fields == {"custom_flag": None}
        assert reparsed.config.targets[0].override_params.extra_fields == {"vendor_option": None}
        assert reparsed == body

    def test_round_trip_short_form_with_null_extra(self):
        body = parse_request_body({"config": {"provider": "openai"}, "params": {"model": "m", "custom": None}})

        reparsed = parse_request_body(json.dumps(dump_request_body(body)))

        assert isinstance(reparsed, ShortRequestBody)
        assert reparsed.params.extra_fields == {"custom": None}
        assert reparsed == body

    def test_unset_fields_not_dumped(self):
        dumped = dump_request_body(parse_request_body(full_body()))

        assert "options" not in dumped["config"]
        assert "temperature" not in dumped["params"]

    def test_round_trip_keeps_camel_case(self):
        dumped = dump_request_body(parse_request_body(full_body()))

        assert dumped["config"]["strategy"]["onStatusCodes"] == [429, 503]
        assert dumped["config"]["targets"][0]["apiKey"] == "sk-test"
        assert dumped["config"]["cache"] == {"mode": "simple", "maxAge": 120}
        assert dumped["params"]["max_tokens"] == 64

    def test_missing_params_rejected(self):
        with pytest.raises(ValidationError):
            parse_request_body({"config": {"provider": "openai"}})

    def test_unknown_strategy_mode_rejected(self):
        data = full_body()
        data["config"]["strategy"]["mode"] = "round_robin"

        with pytest.raises(ValidationError):
            parse_request_body(data)


class TestConfigModels:
    """Test config field naming and shorthand normalisation."""

    def test_snake_case_keys_accepted(self):
        options = Options.model_validate(
            {"provider": "openai", "virtual_key": "vk-1", "retry": {"attempts": 1, "on_status_codes": [429]}}
        )

        assert options.virtual_key == "vk-1"
        assert options.retry.on_status_codes == [429]

    def test_cache_shorthand_and_object_are_equivalent(self):
        shorthand = Options.model_validate({"provider": "openai", "cache": "semantic"})
        structured = Options.model_validate({"provider": "openai", "cache": {"mode": "semantic"}})

        assert shorthand.cache == structured.cache
        assert isinstance(shorthand.cache, CacheSettings)

    def test_config_level_cache_shorthand(self):
        config = Config.model_validate({"options": [{"provider": "openai"}], "cache": "simple"})

        assert config.cache.mode == "simple"
        assert config.cache.max_age is None

    def test_kms_key_alias(self):
        options = Options.model_validate(
            {"provider": "bedrock", "awsServerSideEncryptionKMSKeyId": "kms-1", "awsS3Bucket": "bucket"}
        )

        assert options.aws_server_side_encryption_kms_key_id == "kms-1"
        assert options.aws_s3_bucket == "bucket"
        assert options.to_wire()["awsServerSideEncryptionKMSKeyId"] == "kms-1"

    def test_unknown_config_keys_ignored(self):
        options = Options.model_validate({"provider": "openai", "notAField": 1})

        assert "notAField" not in options.to_wire()

    def test_hooks_keep_all_keys(self):
        options = Options.model_validate(
            {
                "provider": "openai",
                "beforeRequestHooks": [{"id": "pii-check", "type": "guardrail", "deny": True}],
            }
        )

        hook = options.before_request_hooks[0]
        assert hook.id == "pii-check"
        assert hook.model_extra == {"deny": True}

    def test_options_default_empty(self):
        config = Config.model_validate({"targets": [{"provider": "openai"}]})

        assert config.options == []
        assert config.mode is None

    def test_targets_nest_without_depth_limit(self):
        leaf = {"provider": "openai", "name": "leaf"}
        tree = {"targets": [leaf]}
        for level in range(4):
            tree = {"name": f"level-{level}", "strategy": {"mode": "fallback"}, "targets": [tree]}

        config = Config.model_validate({"targets": [tree]})

        node = config.targets[0]
        depth = 0
        while node.targets:
            node = node.targets[0]
            depth += 1
        assert depth == 5
        assert node.name == "leaf"
        assert node.is_leaf

    def test_targets_accept_every_options_field(self):
        target = Targets.model_validate({"provider": "vertex-ai", "vertexRegion": "us-central1", "originalIndex": 3})

        assert target.vertex_region == "us-central1"
        assert target.original_index == 3


class TestParams:
    """Test payload models."""

    def test_extra_fields_preserved(self):
        params = Params.model_validate({"model": "m", "repetition_penalty": 1.1, "top_k": 5})

        assert params.top_k == 5
        assert params.extra_fields == {"repetition_penalty": 1.1}
        assert params.to_wire()["repetition_penalty"] == 1.1

    def test_tool_extra_keys(self):
        tool = Tool.model_validate(
            {
                "type": "computer_use",
                "display_width_px": 1024,
                "cache_control": {"type": "ephemeral"},
            }
        )

        assert tool.function is None
        assert tool.extra_fields == {"display_width_px": 1024}
        assert tool.cache_control.type == "ephemeral"

    def test_function_tool(self):
        params = Params.model_validate(
            {
                "tools": [
                    {
                        "type": "function",
                        "function": {
                            "name": "get_weather",
                            "parameters": {"type": "object", "properties": {"city": {"type": "string"}}},
                            "strict": True,
                        },
                    }
                ],
                "tool_choice": {"type": "function", "function": {"name": "get_weather"}},
            }
        )

        assert params.tools[0].function.name == "get_weather"
        assert params.tools[0].function.parameters["type"] == "object"
        assert params.tool_choice.function.name == "get_weather"

    def test_tool_choice_literal(self):
        assert Params.model_validate({"tool_choice": "required"}).tool_choice == "required"

        with pytest.raises(ValidationError):
            Params.model_validate({"tool_choice": "sometimes"})

    def test_response_format(self):
        params = Params.model_validate({"response_format": {"type": "json_schema", "json_schema": {"name": "x"}}})

        assert params.response_format.type == "json_schema"

    def test_thinking_and_prompt_list(self):
        params = Params.model_validate({"prompt": ["a", "b"], "thinking": {"type": "enabled", "budget_tokens": 1024}})

        assert params.prompt == ["a", "b"]
        assert params.thinking.budget_tokens == 1024

    def test_system_messages(self):
        params = Params.model_validate(
            {
                "messages": [
                    {"role": "developer", "content": "rules"},
                    {"role": "user", "content": "hi"},
                    {"role": "system", "content": "more rules"},
                ]
            }
        )

        assert [m.content for m in params.system_messages()] == ["rules", "more rules"]


class TestMessage:
    """Test message shapes."""

    def test_content_only(self):
        message = Message.model_validate({"role": "user", "content": "hello"})

        assert message.has_content()
        assert message.content_blocks is None

    def test_content_blocks_only(self):
        message = Message.model_validate(
            {
                "role": "assistant",
                "content_blocks": [
                    {"type": "thinking", "thinking": "hmm", "signature": "sig"},
                    {"type": "text", "text": "answer"},
                ],
            }
        )

        assert message.has_content()
        assert message.content is None
        assert message.content_blocks[0].signature == "sig"

    def test_text_content(self):
        assert Message.model_validate({"role": "user", "content": "plain"}).text_content() == "plain"

        blocks_only = Message.model_validate(
            {
                "role": "assistant",
                "content_blocks": [
                    {"type": "thinking", "thinking": "hmm"},
                    {"type": "text", "text": "a"},
                    {"type": "text", "text": "b"},
                ],
            }
        )
        assert blocks_only.text_content() == "ab"
        assert Message.model_validate({"role": "tool"}).text_content() == ""

    def test_multimodal_blocks(self):
        message = Message.model_validate(
            {
                "role": "user",
                "content": [
                    {"type": "image_url", "image_url": {"url": "https://x/cat.png", "detail": "low"}},
                    {"type": "input_audio", "input_audio": {"data": "AAA=", "format": "wav"}},
                    {"type": "file", "file": {"file_id": "file-1"}},
                    {"type": "text", "text": "what is this?", "cache_control": {"type": "ephemeral"}},
                ],
            }
        )

        assert message.content[0].image_url.detail == "low"
        assert message.content[1].input_audio.format == "wav"
        assert message.content[2].file.file_id == "file-1"
        assert message.content[3].cache_control is not None

    def test_invalid_role(self):
        with pytest.raises(ValidationError):
            Message.model_validate({"role": "narrator", "content": "x"})

    def test_citation_metadata_alias(self):
        message = Message.model_validate(
            {
                "role": "assistant",
                "content": "x",
                "citationMetadata": {"citationSources": [{"startIndex": 0, "endIndex": 5, "uri": "https://a"}]},
            }
        )

        assert message.citation_metadata.citation_sources[0].end_index == 5

    def test_tool_calls_passthrough(self):
        message = Message.model_validate(
            {
                "role": "assistant",
                "tool_calls": [
                    {"id": "call_1", "type": "function", "function": {"name": "f", "arguments": "{}"}}
                ],
            }
        )

        assert message.tool_calls[0]["id"] == "call_1"

    def test_tool_call_parses_raw_entry(self):
        message = Message.model_validate(
            {
                "role": "assistant",
                "tool_calls": [
                    {"id": "call_1", "type": "function", "function": {"name": "f", "arguments": "{\"x\": 1}"}}
                ],
            }
        )

        call = ToolCall.model_validate(message.tool_calls[0])

        assert call.function.name == "f"
        assert json.loads(call.function.arguments) == {"x": 1}

    def test_tool_call_requires_function(self):
        with pytest.raises(ValidationError):
            ToolCall.model_validate({"id": "call_1", "type": "function"})

    def test_content_block_chunk(self):
        chunk = ContentBlockChunk.model_validate({"index": 2, "text": "par"})

        assert chunk.index == 2
        assert chunk.type is None

    def test_system_roles(self):
        assert SYSTEM_MESSAGE_ROLES == ("system", "developer")
        assert is_system_role("developer")
        assert is_system_role(MessageRole.SYSTEM)
        assert not is_system_role("user")
