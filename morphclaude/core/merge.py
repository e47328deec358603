# morphclaude/core/merge.py
"""
Fast-apply 合并执行器

向 Morph 的 OpenAI 兼容 chat completions 接口发送一次提示（指令 + <code> + <update>），
再从回答的 <merged>...</merged> 块中取出合并后的完整文件。
"""

from pathlib import Path
from typing import Any, Dict, Optional

import httpx
import jinja2

from .config import DEFAULT_MERGE_MODEL, MERGE_TIMEOUT, Settings
from .errors import AuthError, EmptyMergeError, MergeExecutionError

TEMPLATES_DIR = Path(__file__).parent.parent / "templates"
PROMPT_TEMPLATE = "merge_prompt.j2"

START_TAG = "<merged>"
END_TAG = "</merged>"

# Anything shorter than this after trimming is treated as an empty merge.
MIN_MERGED_LENGTH = 10


def create_jinja_env() -> jinja2.Environment:
    loader = jinja2.FileSystemLoader(str(TEMPLATES_DIR))
    return jinja2.Environment(
        loader=loader,
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
    )


def extract_between(text: str, start_tag: str = START_TAG, end_tag: str = END_TAG) -> str:
    """
    Return the trimmed text between the first `start_tag` and the first
    `end_tag` that follows it. Without a well-ordered pair of tags the whole
    trimmed text is returned.
    """
    start = text.find(start_tag)
    if start >= 0:
        end = text.find(end_tag, start + len(start_tag))
        if end > start:
            return text[start + len(start_tag):end].strip()
    return text.strip()


class MergeExecutor:
    """Merges a proposed update into a file's full content via the merge endpoint."""

    def __init__(
        self,
        api_key: Optional[str],
        endpoint: str,
        model: str = DEFAULT_MERGE_MODEL,
        timeout: float = MERGE_TIMEOUT,
        min_length: int = MIN_MERGED_LENGTH,
    ) -> None:
        self.api_key = api_key
        self.endpoint = endpoint
        self.model = model
        self.timeout = timeout
        self.min_length = min_length
        self.env = create_jinja_env()

    @classmethod
    def from_settings(cls, settings: Settings) -> "MergeExecutor":
        return cls(
            api_key=settings.api_key,
            endpoint=settings.merge_url,
            model=settings.merge_model,
            timeout=settings.merge_timeout,
        )

    def build_prompt(self, original: str, update: str, goal: str = "") -> str:
        template = self.env.get_template(PROMPT_TEMPLATE)
        return template.render(code=original, update=update, goal=goal).strip()

    def build_payload(self, prompt: str) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": 0,
            "top_p": 1,
        }

    def complete(self, prompt: str) -> str:
        """Send one completion request and return the raw answer text."""
        if not self.api_key:
            raise AuthError("No Morph API key available. Set MORPH_API_KEY or run `morphclaude install`.")

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(self.endpoint, json=self.build_payload(prompt), headers=headers)
        except httpx.TimeoutException as e:
            raise MergeExecutionError(f"Merge request timed out after {self.timeout:g}s: {e}") from e
        except httpx.HTTPError as e:
            raise MergeExecutionError(f"Merge request failed: {e}") from e

        if not response.is_success:
            raise MergeExecutionError(f"Merge endpoint responded with {response.status_code}: {response.text}")

        try:
            data = response.json()
        except ValueError as e:
            raise MergeExecutionError(f"Merge endpoint returned invalid JSON: {e}") from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            content = None
        if not content or not str(content).strip():
            raise EmptyMergeError("Merge endpoint returned an empty completion")
        return str(content)

    def merge(self, original: str, update: str, goal: str = "") -> str:
        """
        Merge `update` into `original` and return the complete new content.

        Raises:
            AuthError: no API key (raised before any network call).
            EmptyMergeError: the merged text is empty or near-empty.
            MergeExecutionError: transport, timeout or protocol failure.
        """
        answer = self.complete(self.build_prompt(original, update, goal))
        merged = extract_between(answer)
        if len(merged) < self.min_length:
            raise EmptyMergeError(
                f"Merge produced near-empty output ({len(merged)} chars, minimum {self.min_length})"
            )
        return merged
