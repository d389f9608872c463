"""Extraction of JSON payloads from model responses."""

import json
import logging
import re
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class ResponseFormatter:
    """
    Pulls a JSON object out of free-form model output.

    Tries, in order: a fenced ```json block, the whole response, then the
    first balanced {...} object embedded in surrounding prose.
    """

    FENCE_PATTERNS = (
        r'```json\s*\n(.*?)\n```',
        r'```\s*\n(.*?)\n```',
    )

    @staticmethod
    def extract_json_from_response(response_text: str) -> Optional[Dict[str, Any]]:
        """
        Extract the first JSON object from a response.

        Args:
            response_text: Raw response text that may contain JSON

        Returns:
            Parsed JSON dictionary, or None if no valid JSON object found
        """
        if not response_text or not response_text.strip():
            logger.warning("Empty response text provided")
            return None

        text = response_text.strip()

        for pattern in ResponseFormatter.FENCE_PATTERNS:
            match = re.search(pattern, text, re.DOTALL)
            if match:
                parsed = ResponseFormatter._loads_object(match.group(1).strip())
                if parsed is not None:
                    return parsed

        parsed = ResponseFormatter._loads_object(text)
        if parsed is not None:
            return parsed

        parsed = ResponseFormatter._extract_embedded_json(text)
        if parsed is None:
            logger.warning(f"Failed to extract JSON from response: {text[:200]}...")
        return parsed

    @staticmethod
    def _loads_object(text: str) -> Optional[Dict[str, Any]]:
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            return None
        return data if isinstance(data, dict) else None

    @staticmethod
    def _extract_embedded_json(text: str) -> Optional[Dict[str, Any]]:
        """Find the first balanced JSON object by brace counting, skipping string contents."""
        start_idx = text.find('{')
        while start_idx != -1:
            depth = 0
            in_string = False
            escape_next = False

            for i in range(start_idx, len(text)):
                char = text[i]
                if escape_next:
                    escape_next = False
                elif char == '\\':
                    escape_next = True
                elif char == '"':
                    in_string = not in_string
                elif not in_string and char == '{':
                    depth += 1
                elif not in_string and char == '}':
                    depth -= 1
                    if depth == 0:
                        parsed = ResponseFormatter._loads_object(text[start_idx:i + 1])
                        if parsed is not None:
                            return parsed
                        break

            start_idx = text.find('{', start_idx + 1)

        return None
