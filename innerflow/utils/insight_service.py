"""
Service for generating a short daily insight on a journal entry with an LLM.
"""
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from ..models.journal import AI_MOODS, JournalEntry

logger = logging.getLogger(__name__)

# Constants for LLM parameters (can be adjusted)
DEFAULT_MAX_NEW_TOKENS = 200
DEFAULT_TEMPERATURE = 0.6
DEFAULT_TOP_P = 0.9
DEFAULT_TIMEOUT = 30
DEFAULT_MODEL = "mistralai/Mistral-7B-Instruct-v0.3"

# Shown when no insight can be generated
FALLBACK_INSIGHTS = {
    "en": {
        "missing_key": "Writing it down is the first step to feeling better. (An API key is needed for AI insights.)",
        "failed": "Glad to see today's entry. Keep it up.",
        "empty": "A little progress every day. Keep going!",
    },
    "zh": {
        "missing_key": "坚持记录是变好的第一步。（需要 API Key 才能获取 AI 洞察）",
        "failed": "很高兴看到你今天的记录，继续保持。",
        "empty": "每天进步一点点，加油！",
    },
}

_FENCED_JSON = re.compile(r"```(?:json)?\s*(\{.*\})\s*```", re.DOTALL)
_BARE_JSON = re.compile(r"\{.*\}", re.DOTALL)


@dataclass
class Insight:
    text: str
    mood: str = "neutral"


class InsightService:
    """Generates a warm, short insight and a mood for a day's entry.

    Any failure (no API key, HTTP error, timeout, unparseable output) gives a
    fixed fallback text with a neutral mood. ``generate`` never raises.
    """

    def __init__(self, api_key: Optional[str] = None, model_name: str = DEFAULT_MODEL,
                 locale: str = "en", timeout: float = DEFAULT_TIMEOUT):
        """Initialize the insight service.

        Args:
            api_key: Hugging Face API token.
            model_name: The Hugging Face model to use.
            locale: Language of the fallback texts ("en" or "zh").
            timeout: Seconds to wait for the inference API.
        """
        self.api_key = api_key
        self.model_name = model_name
        self.api_url = f"https://api-inference.huggingface.co/models/{model_name}"
        self.timeout = timeout
        self.fallbacks = FALLBACK_INSIGHTS.get(locale, FALLBACK_INSIGHTS["en"])
        logger.info(f"Using LLM model for insights: {self.model_name}")

        if not self.api_key:
            logger.warning("HUGGINGFACE_API_KEY not set. Insights will use the fallback text.")

    def get_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }

    def create_insight_prompt(self, entry: JournalEntry) -> str:
        """Build the prompt from the full content of the entry."""
        achievements = ", ".join(text for text in entry.achievements if text.strip()) or "none"
        happiness = ", ".join(text for text in entry.happiness if text.strip()) or "none"

        lines = [
            "You are a warm, empathetic personal growth coach. Read the user's journal entry for today.",
            "",
            f"Achievements today: {achievements}",
            f"Happy moments today: {happiness}",
            f"Energy drain: {entry.drainer_level} ({entry.drainer_note or 'no details'})",
            f"Most important task today: {entry.today_mit_description or 'not set'}",
            f"Completed: {'yes' if entry.mit_completed else 'no'}",
        ]
        if not entry.mit_completed:
            lines.append(f"Reason it was not completed: {entry.mit_reason or 'not given'}")
        lines += [
            f"Most important task for tomorrow: {entry.tomorrow_mit or 'not set'}",
            "",
            "Tasks:",
            "1. Write a short, warm piece of feedback (at most 50 words). Acknowledge completed tasks and",
            "   achievements; offer gentle encouragement if energy was drained or the task was not completed.",
            "2. Judge the overall mood of the entry: positive, neutral or needs-care.",
            "",
            'Reply with JSON only, with the fields "insight" and "mood".',
        ]
        return "\n".join(lines)

    def _call_llm_api(self, prompt: str) -> Optional[str]:
        """Call the Hugging Face Inference API.

        Returns:
            The generated text, or None if the call failed.
        """
        payload = {
            "inputs": prompt,
            "parameters": {
                "max_new_tokens": DEFAULT_MAX_NEW_TOKENS,
                "temperature": DEFAULT_TEMPERATURE,
                "top_p": DEFAULT_TOP_P,
                "do_sample": True,
                "return_full_text": False
            },
            "options": {
                "wait_for_model": True
            }
        }

        try:
            logger.debug(f"Sending insight request to {self.api_url} with prompt length: {len(prompt)}")
            response = requests.post(self.api_url, headers=self.get_headers(), json=payload, timeout=self.timeout)
            response.raise_for_status()
            result = response.json()
        except requests.exceptions.Timeout:
            logger.error("Insight request to Hugging Face API timed out.")
            return None
        except requests.exceptions.RequestException as e:
            logger.error(f"Error calling Hugging Face API for insight: {e}")
            return None
        except ValueError as e:
            logger.error(f"Hugging Face API returned invalid JSON: {e}")
            return None

        if isinstance(result, list) and result and isinstance(result[0], dict) and "generated_text" in result[0]:
            return result[0]["generated_text"]
        if isinstance(result, dict) and "generated_text" in result:
            return result["generated_text"]
        if isinstance(result, dict) and "error" in result:
            logger.error(f"Hugging Face API Error: {result['error']}")
            return None

        logger.warning(f"Unexpected LLM response format: {result}")
        return None

    def parse_insight(self, text: str) -> Insight:
        """Extract the insight and mood from the generated text.

        The JSON object may be wrapped in a fenced code block or surrounded
        by prose. Text that holds no JSON object is used as the insight.
        """
        parsed: Dict[str, Any]
        fenced = _FENCED_JSON.search(text)
        bare = _BARE_JSON.search(text)
        candidate = fenced.group(1) if fenced else (bare.group(0) if bare else text)
        try:
            parsed = json.loads(candidate)
            if not isinstance(parsed, dict):
                raise ValueError("not an object")
        except ValueError:
            parsed = {"insight": text.strip(), "mood": "neutral"}

        insight = parsed.get("insight")
        mood = parsed.get("mood")
        return Insight(
            text=insight.strip() if isinstance(insight, str) and insight.strip() else self.fallbacks["empty"],
            mood=mood if mood in AI_MOODS else "neutral",
        )

    def generate(self, entry: JournalEntry) -> Insight:
        """Generate the insight for an entry.

        Returns:
            The generated insight, or the fallback insight on any failure.
        """
        if not self.api_key:
            return Insight(self.fallbacks["missing_key"], "neutral")

        try:
            raw_response = self._call_llm_api(self.create_insight_prompt(entry))
            if raw_response is None:
                return Insight(self.fallbacks["failed"], "neutral")
            return self.parse_insight(raw_response)
        except Exception as e:
            logger.error(f"Unexpected error generating insight: {e}", exc_info=True)
            return Insight(self.fallbacks["failed"], "neutral")
