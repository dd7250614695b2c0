"""Routing configuration shapes: provider bindings, target trees and configs.

Provider-specific settings are flat fields grouped by prefix (``aws*``,
``azure*``, ``vertex*``, ``amznSagemaker*``, ``stability*``, ``anthropic*``,
``openai*``) rather than nested objects.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import ConfigDict, Field

from conduit.app.schemas.base import ConfigModel
from conduit.app.schemas.params import Params
from conduit.app.schemas.policy import CacheField, RetrySettings, Strategy


class HookObject(ConfigModel):
    """A before/after-request hook or guardrail reference.

    Hooks are evaluated elsewhere, so every key is kept as-is.
    """

    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    type: Optional[str] = None


class Options(ConfigModel):
    """Configuration for one upstream provider binding."""

    provider: Optional[str] = None
    virtual_key: Optional[str] = None
    api_key: Optional[str] = None
    # Relative weight in loadbalance mode
    weight: Optional[float] = None
    retry: Optional[RetrySettings] = None
    override_params: Optional[Params] = None
    url_to_fetch: Optional[str] = None
    custom_host: Optional[str] = None
    # Headers forwarded as-is to the provider
    forward_headers: Optional[list[str]] = None
    # Index of the option picked by weight in loadbalance mode
    index: Optional[int] = None
    cache: Optional[CacheField] = None
    metadata: Optional[dict[str, str]] = None
    request_timeout: Optional[int] = None
    # Send the request as multipart form data (Stability v2)
    transform_to_form_data: Optional[bool] = None
    # Required for file uploads with Google
    filename: Optional[str] = None

    before_request_hooks: Optional[list[HookObject]] = None
    after_request_hooks: Optional[list[HookObject]] = None
    default_input_guardrails: Optional[list[HookObject]] = None
    default_output_guardrails: Optional[list[HookObject]] = None

    # Return non-OpenAI-compliant fields in responses when False
    strict_open_ai_compliance: Optional[bool] = None
    # Use the fim/completions endpoint
    mistral_fim_completion: Optional[str] = None

    # Azure OpenAI
    resource_name: Optional[str] = None
    deployment_id: Optional[str] = None
    api_version: Optional[str] = None
    ad_auth: Optional[str] = None
    azure_auth_mode: Optional[str] = None
    azure_managed_client_id: Optional[str] = None
    azure_entra_client_id: Optional[str] = None
    azure_entra_client_secret: Optional[str] = None
    azure_entra_tenant_id: Optional[str] = None
    azure_ad_token: Optional[str] = None
    azure_model_name: Optional[str] = None

    # Azure AI Inference
    azure_deployment_name: Optional[str] = None
    azure_api_version: Optional[str] = None
    azure_extra_params: Optional[str] = None
    azure_foundry_url: Optional[str] = None

    # Workers AI
    workers_ai_account_id: Optional[str] = None

    # AWS (Bedrock and Sagemaker)
    aws_secret_access_key: Optional[str] = None
    aws_access_key_id: Optional[str] = None
    aws_session_token: Optional[str] = None
    aws_region: Optional[str] = None
    aws_auth_type: Optional[str] = None
    aws_role_arn: Optional[str] = None
    aws_external_id: Optional[str] = None
    aws_s3_bucket: Optional[str] = None
    aws_s3_object_key: Optional[str] = None
    aws_bedrock_model: Optional[str] = None
    aws_server_side_encryption: Optional[str] = None
    aws_server_side_encryption_kms_key_id: Optional[str] = Field(
        default=None, alias="awsServerSideEncryptionKMSKeyId"
    )

    # Sagemaker
    amzn_sagemaker_custom_attributes: Optional[str] = None
    amzn_sagemaker_target_model: Optional[str] = None
    amzn_sagemaker_target_variant: Optional[str] = None
    amzn_sagemaker_target_container_hostname: Optional[str] = None
    amzn_sagemaker_inference_id: Optional[str] = None
    amzn_sagemaker_enable_explanations: Optional[str] = None
    amzn_sagemaker_inference_component: Optional[str] = None
    amzn_sagemaker_session_id: Optional[str] = None
    amzn_sagemaker_model_name: Optional[str] = None

    # Stability AI
    stability_client_id: Optional[str] = None
    stability_client_user_id: Optional[str] = None
    stability_client_version: Optional[str] = None

    # Hugging Face
    huggingface_base_url: Optional[str] = None

    # Google Vertex AI
    vertex_region: Optional[str] = None
    vertex_project_id: Optional[str] = None
    vertex_service_account_json: Optional[dict[str, Any]] = None
    vertex_storage_bucket_name: Optional[str] = None
    vertex_model_name: Optional[str] = None

    # OpenAI
    openai_project: Optional[str] = None
    openai_organization: Optional[str] = None
    openai_beta: Optional[str] = None

    # Anthropic
    anthropic_beta: Optional[str] = None
    anthropic_version: Optional[str] = None

    # Fireworks fine-tuning
    fireworks_account_id: Optional[str] = None

    # Snowflake Cortex
    snowflake_account: Optional[str] = None


class Targets(Options):
    """A target: a provider binding, or a strategy over nested targets."""

    name: Optional[str] = None
    strategy: Optional[Strategy] = None
    targets: Optional[list["Targets"]] = None
    # Position in the source config before any reordering
    original_index: Optional[int] = None

    @property
    def is_leaf(self) -> bool:
        return not self.targets


class ConfigMode(str, Enum):
    """Top-level request handling modes."""

    SINGLE = "single"
    FALLBACK = "fallback"
    LOADBALANCE = "loadbalance"
    SCIENTIST = "scientist"


class Config(ConfigModel):
    """Configuration for handling the request.

    ``options`` and ``targets`` are alternative provider lists; exactly one
    of them is expected to be populated. ``cache``, ``retry`` and
    ``strategy`` are defaults for targets that do not set their own.
    """

    mode: Optional[ConfigMode] = None
    options: list[Options] = Field(default_factory=list)
    targets: Optional[list[Targets]] = None
    cache: Optional[CacheField] = None
    retry: Optional[RetrySettings] = None
    strategy: Optional[Strategy] = None
    custom_host: Optional[str] = None


class ShortConfig(ConfigModel):
    """Abbreviated single-provider configuration."""

    provider: str
    virtual_key: Optional[str] = None
    api_key: Optional[str] = None
    cache: Optional[CacheField] = None
    retry: Optional[RetrySettings] = None
    resource_name: Optional[str] = None
    deployment_id: Optional[str] = None
    workers_ai_account_id: Optional[str] = None
    api_version: Optional[str] = None
    azure_auth_mode: Optional[str] = None
    azure_managed_client_id: Optional[str] = None
    azure_entra_client_id: Optional[str] = None
    azure_entra_client_secret: Optional[str] = None
    azure_entra_tenant_id: Optional[str] = None
    azure_model_name: Optional[str] = None
    custom_host: Optional[str] = None
    # Google Vertex AI
    vertex_region: Optional[str] = None
    vertex_project_id: Optional[str] = None

    def to_options(self) -> Options:
        """Expand into a full provider binding."""
        return Options.model_validate(self.model_dump(exclude_none=True))
