"""
External (LLM) suggestion providers for ledger classification.

Providers are injected into the batch orchestrator behind the
SuggestionProvider capability. Two implementations are available:
OpenAI chat completions (GPT-4o-mini by default) and a local Ollama server.

Error contract:
- ProviderUnavailableError → the channel is down (connectivity, quota,
  credentials); the orchestrator switches the whole batch to local resolution.
- SuggestionProviderError → this request failed; other ledgers are unaffected.
- None → the provider answered but produced no usable suggestion.
"""
import json
import re
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional, Union

import httpx
import openai
import structlog
from openai import AsyncOpenAI
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from ledgermap.config import Settings, get_settings
from ledgermap.exceptions import ProviderUnavailableError, SuggestionProviderError
from ledgermap.models.suggestion import Suggestion, SuggestionSource
from ledgermap.services.taxonomy_service import TaxonomyService

logger = structlog.get_logger(__name__)

Balance = Union[Decimal, float, int]


SYSTEM_PROMPT = """You are an expert accountant specializing in Indian Accounting Standards (AS) and Schedule III financial statements.
Your task is to map a trial balance ledger to the correct financial statement classification.

The mapping MUST use only codes present in the supplied chart of accounts:
- majorHeadCode from Major Heads
- minorHeadCode from Minor Heads whose majorHeadCode is the chosen Major Head
- groupingCode from Groupings whose minorHeadCode is the chosen Minor Head
- lineItemCode (optional) from Line Items whose groupingCode is the chosen Grouping

Respond in JSON format:
{
  "majorHeadCode": "...",
  "minorHeadCode": "...",
  "groupingCode": "...",
  "lineItemCode": "... or null",
  "confidence": 0.0-1.0,
  "reasoning": "Brief explanation"
}"""


class ProviderSuggestionPayload(BaseModel):
    """Shape of a provider's JSON answer."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    major_head_code: Optional[str] = Field(None, alias="majorHeadCode")
    minor_head_code: Optional[str] = Field(None, alias="minorHeadCode")
    grouping_code: Optional[str] = Field(None, alias="groupingCode")
    line_item_code: Optional[str] = Field(None, alias="lineItemCode")
    confidence: float = 0.0
    reasoning: str = ""

    def to_suggestion(self) -> Optional[Suggestion]:
        """Convert to a Suggestion; None when a required code is missing."""
        if not (self.major_head_code and self.minor_head_code and self.grouping_code):
            return None
        return Suggestion(
            major_head_code=self.major_head_code,
            minor_head_code=self.minor_head_code,
            grouping_code=self.grouping_code,
            line_item_code=self.line_item_code or None,
            confidence=self.confidence,
            rationale=self.reasoning,
            source=SuggestionSource.AI,
        )


def balance_nature_hint(ledger_name: str, closing_balance: Balance) -> str:
    """
    Advisory text describing the balance's debit/credit nature.

    The hint only briefs the provider; it is never enforced on the answer.
    """
    is_debit = Decimal(str(closing_balance)) >= 0
    nature = "debit" if is_debit else "credit"
    hint = f"The closing balance is a {nature} balance."
    if "commission" in ledger_name.lower():
        hint += (
            " A commission ledger with a credit balance is usually commission received (income);"
            " with a debit balance it is usually commission paid (expense)."
        )
    return hint


def build_prompt(ledger_name: str, closing_balance: Balance, taxonomy: TaxonomyService) -> str:
    """
    Build the user prompt for one ledger.

    Args:
        ledger_name: Ledger to classify.
        closing_balance: Current period closing balance.
        taxonomy: Taxonomy snapshot to choose codes from.

    Returns:
        Prompt string.
    """
    snapshot = taxonomy.to_dict()
    prompt = f'Ledger Item to Map: "{ledger_name}"\n'
    prompt += f"Closing Balance: {closing_balance}\n"
    prompt += balance_nature_hint(ledger_name, closing_balance) + "\n\n"
    prompt += "Chart of Accounts:\n"
    prompt += f"Major Heads: {json.dumps(snapshot['majorHeads'])}\n"
    prompt += f"Minor Heads: {json.dumps(snapshot['minorHeads'])}\n"
    prompt += f"Groupings: {json.dumps(snapshot['groupings'])}\n"
    prompt += f"Line Items: {json.dumps(snapshot['lineItems'])}\n"
    prompt += "\nRespond with JSON only."
    return prompt


def parse_suggestion(content: Optional[str]) -> Optional[Suggestion]:
    """
    Parse a provider's JSON answer into a Suggestion.

    Args:
        content: Raw response text, possibly wrapped in prose.

    Returns:
        Suggestion, or None if the answer is not a usable object.
    """
    if not content:
        return None

    json_match = re.search(r"\{[\s\S]*\}", content)
    if not json_match:
        logger.warning("No JSON object in provider response", content=content[:100])
        return None

    try:
        data = json.loads(json_match.group())
        payload = ProviderSuggestionPayload.model_validate(data)
    except (json.JSONDecodeError, PydanticValidationError) as e:
        logger.warning("Failed to parse provider response", error=str(e))
        return None

    suggestion = payload.to_suggestion()
    if suggestion is None:
        logger.warning("Provider response missing required codes", content=content[:100])
    return suggestion


class SuggestionProvider(ABC):
    """Capability for fetching an external mapping suggestion."""

    name: str = "provider"

    @abstractmethod
    async def get_suggestion(
        self,
        ledger_name: str,
        closing_balance: Balance,
        taxonomy: TaxonomyService,
    ) -> Optional[Suggestion]:
        """
        Ask the provider for a mapping suggestion.

        Returns:
            Suggestion (untrusted, must be validated) or None.

        Raises:
            ProviderUnavailableError: The channel is down.
            SuggestionProviderError: This request failed.
        """


class OpenAISuggestionProvider(SuggestionProvider):
    """
    Suggestion provider using OpenAI chat completions in JSON mode.
    """

    name = "openai"
    MAX_TOKENS = 256
    TEMPERATURE = 0.1  # Low temperature for consistent results

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        settings: Optional[Settings] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        """
        Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key (defaults to configured key).
            model: Chat model name.
            settings: Application settings.
            client: Preconfigured client, mainly for tests.
        """
        settings = settings or get_settings()
        self._model = model or settings.openai_model
        self._client = client or AsyncOpenAI(
            api_key=api_key or settings.openai_api_key,
            timeout=settings.llm_timeout_seconds,
        )
        self._call_count = 0
        self._total_tokens = 0

    async def get_suggestion(
        self,
        ledger_name: str,
        closing_balance: Balance,
        taxonomy: TaxonomyService,
    ) -> Optional[Suggestion]:
        prompt = build_prompt(ledger_name, closing_balance, taxonomy)

        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=self.MAX_TOKENS,
                temperature=self.TEMPERATURE,
                response_format={"type": "json_object"},
            )
        except (
            openai.APIConnectionError,
            openai.RateLimitError,
            openai.AuthenticationError,
            openai.PermissionDeniedError,
        ) as e:
            logger.error("OpenAI channel unavailable", error=str(e), error_type=type(e).__name__)
            raise ProviderUnavailableError(self.name, message=str(e)) from e
        except openai.APIError as e:
            logger.warning("OpenAI request failed", ledger=ledger_name[:50], error=str(e))
            raise SuggestionProviderError(self.name, message=str(e)) from e

        self._call_count += 1
        if response.usage:
            self._total_tokens += response.usage.total_tokens

        content = response.choices[0].message.content if response.choices else None
        suggestion = parse_suggestion(content)

        logger.info(
            "OpenAI suggestion received",
            ledger=ledger_name[:50],
            grouping=suggestion.grouping_code if suggestion else None,
            confidence=suggestion.confidence if suggestion else None,
        )
        return suggestion

    @property
    def call_count(self) -> int:
        """Get total API calls made."""
        return self._call_count

    @property
    def total_tokens(self) -> int:
        """Get total tokens used."""
        return self._total_tokens


class OllamaSuggestionProvider(SuggestionProvider):
    """Suggestion provider using a local Ollama server."""

    name = "ollama"

    # Statuses meaning the server or model is not usable at all
    SYSTEMIC_STATUSES = {401, 403, 404, 429}

    def __init__(
        self,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize Ollama provider.

        Args:
            base_url: Ollama server URL.
            model: Model name.
            settings: Application settings.
            transport: Custom httpx transport, mainly for tests.
        """
        settings = settings or get_settings()
        self._base_url = (base_url or settings.ollama_url).rstrip("/")
        self._model = model or settings.ollama_model
        self._timeout = settings.llm_timeout_seconds
        self._transport = transport

    async def get_suggestion(
        self,
        ledger_name: str,
        closing_balance: Balance,
        taxonomy: TaxonomyService,
    ) -> Optional[Suggestion]:
        prompt = SYSTEM_PROMPT + "\n\n" + build_prompt(ledger_name, closing_balance, taxonomy)

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(
                    f"{self._base_url}/api/generate",
                    json={
                        "model": self._model,
                        "prompt": prompt,
                        "format": "json",
                        "stream": False,
                        "options": {"temperature": 0.1},
                    },
                )
                response.raise_for_status()
                result = response.json()
        except (httpx.ConnectError, httpx.TimeoutException) as e:
            logger.error("Ollama channel unavailable", error=str(e), error_type=type(e).__name__)
            raise ProviderUnavailableError(self.name, message=str(e) or type(e).__name__) from e
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            if status_code in self.SYSTEMIC_STATUSES:
                logger.error("Ollama channel unavailable", status_code=status_code)
                raise ProviderUnavailableError(
                    self.name, message=f"Ollama returned HTTP {status_code}"
                ) from e
            logger.warning("Ollama request failed", ledger=ledger_name[:50], status_code=status_code)
            raise SuggestionProviderError(
                self.name, message=f"Ollama returned HTTP {status_code}"
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Ollama request failed", ledger=ledger_name[:50], error=str(e))
            raise SuggestionProviderError(self.name, message=str(e)) from e

        if not isinstance(result, dict):
            logger.warning("Unexpected Ollama response", ledger=ledger_name[:50])
            return None
        return parse_suggestion(result.get("response", ""))


def get_suggestion_provider(settings: Optional[Settings] = None) -> Optional[SuggestionProvider]:
    """
    Build the provider selected in configuration.

    Returns:
        SuggestionProvider, or None when external suggestions are disabled
        or not configured.
    """
    settings = settings or get_settings()

    if settings.llm_provider == "openai":
        if not settings.openai_api_key:
            logger.warning("OpenAI provider selected but no API key configured")
            return None
        logger.info("Using OpenAI suggestion provider", model=settings.openai_model)
        return OpenAISuggestionProvider(settings=settings)

    if settings.llm_provider == "ollama":
        logger.info("Using Ollama suggestion provider", url=settings.ollama_url)
        return OllamaSuggestionProvider(settings=settings)

    return None
