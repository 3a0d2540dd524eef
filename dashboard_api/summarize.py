"""Per-article news summarization through OpenAI or Amazon Bedrock."""

import json
import os
import time
from pathlib import Path

import boto3
import requests
from botocore.exceptions import BotoCoreError, ClientError

from .config import LLMConfig
from .logging_config import create_request_logger
from .models import FeedItem

PLACEHOLDER_SUMMARY = "Summary not available"

SYSTEM_PROMPT = "You summarize Norwegian news articles concisely."

DEFAULT_PROMPT_TEMPLATE = (
    "You are a helpful Norwegian news summarizer, give the summary in Norwegian. "
    "Given this VG.no headline and description, write a concise 1-2 sentence summary. "
    "Do not repeat the headline, provide additional context or background information. "
    "Use as few words as possible while being informative.\n\n"
    "Headline: {title}\n"
    "Description: {description}"
)


class SummarizerNotConfigured(Exception):
    """The summarization model cannot be called with the current configuration."""


class Summarizer:
    """Generates one short summary per feed item."""

    TEMPLATE_ENV = "SUMMARY_PROMPT_FILE"

    def __init__(self, config: LLMConfig, request_id: str | None = None):
        self.config = config
        self.logger = create_request_logger("summarizer", request_id)
        self.prompt_template = self._load_prompt_template()
        self.session = requests.Session()
        self.bedrock_client = None
        if self.config.provider == "bedrock":
            self._initialize_bedrock_client()

    def _initialize_bedrock_client(self) -> None:
        try:
            self.bedrock_client = boto3.client("bedrock-runtime", region_name=self.config.region)
            self.logger.info("Initialized Bedrock client", region=self.config.region)
        except (BotoCoreError, ClientError) as e:
            self.logger.warning(f"Failed to initialize Bedrock client: {e}", error=str(e))
            self.bedrock_client = None

    def _load_prompt_template(self) -> str:
        template_path = os.getenv(self.TEMPLATE_ENV)
        if template_path and Path(template_path).exists():
            try:
                return Path(template_path).read_text(encoding="utf-8")
            except OSError as e:
                self.logger.warning(f"Failed to load template file: {e}")
        return DEFAULT_PROMPT_TEMPLATE

    @property
    def is_configured(self) -> bool:
        if self.config.provider == "bedrock":
            return self.bedrock_client is not None
        return bool(self.config.api_key)

    def build_prompt(self, item: FeedItem) -> str:
        return self.prompt_template.format(
            title=item.title,
            description=item.description or "No description available",
            link=item.link,
        )

    def summarize(self, item: FeedItem) -> str | None:
        """Summarize one item.

        Returns:
            The summary text, or None when the model call failed

        Raises:
            SummarizerNotConfigured: If no provider is usable
        """
        if not self.is_configured:
            raise SummarizerNotConfigured(
                f"Summarizer provider '{self.config.provider}' is not configured"
            )

        try:
            prompt = self.build_prompt(item)
            if self.config.provider == "bedrock":
                text = self.bedrock_summarize(prompt)
            else:
                text = self.openai_summarize(prompt)
        except (
            requests.RequestException,
            ClientError,
            BotoCoreError,
            KeyError,
            IndexError,
            TypeError,
            ValueError,
        ) as e:
            self.logger.error(
                f"Error summarizing article: {e}", item_title=item.title, error=str(e)
            )
            return None

        text = (text or "").strip()
        if not text:
            self.logger.warning("Empty response from model", item_title=item.title)
            return None
        return text

    def summarize_many(self, items: list[FeedItem]) -> list[str | None]:
        """Summarize items one call at a time; a failed item yields None."""
        return [self.summarize(item) for item in items]

    def openai_summarize(self, prompt: str) -> str:
        start_time = time.time()
        response = self.session.post(
            self.config.api_url,
            headers={
                "Authorization": f"Bearer {self.config.api_key}",
                "Content-Type": "application/json",
            },
            json={
                "model": self.config.model,
                "messages": [
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                "temperature": self.config.temperature,
                "max_tokens": self.config.max_tokens,
            },
            timeout=self.config.timeout,
        )
        if not response.ok:
            self.logger.error(
                f"OpenAI responded with status {response.status_code}",
                status_code=response.status_code,
                response_text=response.text[:500],
            )
            response.raise_for_status()

        data = response.json()
        if not isinstance(data, dict):
            raise ValueError("Unexpected completion payload")
        usage = data.get("usage") if isinstance(data.get("usage"), dict) else {}
        self.logger.info(
            "OpenAI summary generated",
            model=self.config.model,
            tokens=usage.get("total_tokens"),
            response_time_ms=int((time.time() - start_time) * 1000),
        )
        choices = data.get("choices")
        first = choices[0] if isinstance(choices, list) and choices else {}
        message = first.get("message") if isinstance(first, dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        return content if isinstance(content, str) else ""

    def bedrock_summarize(self, prompt: str) -> str:
        """Call Bedrock with the request format the configured model expects."""
        model_id = self.config.bedrock_model_id
        is_llama = "llama" in model_id.lower()

        if is_llama:
            request_body = {
                "prompt": self._format_llama_prompt(prompt),
                "max_gen_len": self.config.max_tokens,
                "temperature": self.config.temperature,
            }
        else:
            request_body = {
                "system": [{"text": SYSTEM_PROMPT}],
                "messages": [{"role": "user", "content": [{"text": prompt}]}],
                "inferenceConfig": {
                    "maxTokens": self.config.max_tokens,
                    "temperature": self.config.temperature,
                },
            }

        start_time = time.time()
        response = self.bedrock_client.invoke_model(
            modelId=model_id,
            body=json.dumps(request_body),
            contentType="application/json",
            accept="application/json",
        )
        response_body = json.loads(response["body"].read())
        self.logger.info(
            "Bedrock summary generated",
            model=model_id,
            response_time_ms=int((time.time() - start_time) * 1000),
        )

        if is_llama:
            return response_body["generation"]
        return response_body["output"]["message"]["content"][0]["text"]

    def _format_llama_prompt(self, prompt: str) -> str:
        return (
            "<|begin_of_text|><|start_header_id|>system<|end_header_id|>\n\n"
            f"{SYSTEM_PROMPT}<|eot_id|><|start_header_id|>user<|end_header_id|>\n\n"
            f"{prompt}<|eot_id|><|start_header_id|>assistant<|end_header_id|>\n\n"
        )
