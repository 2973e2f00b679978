import json
import math
import logging
from openai import OpenAI
from blokt.core.config import AI_API_KEY, AI_BASE_URL, AI_MODEL, VIDEO_ANNOTATIONS_PATH

logger = logging.getLogger(__name__)

_client = None


class AIResponseError(Exception):
    """The model answered, but not with a JSON array of task ids."""


def get_client() -> OpenAI:
    global _client
    if _client is None:
        _client = OpenAI(api_key=AI_API_KEY or "not-configured", base_url=AI_BASE_URL)
    return _client


def _chat(system_prompt: str, user_prompt: str, max_tokens: int = 800) -> str:
    resp = get_client().chat.completions.create(
        model=AI_MODEL,
        messages=[
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ],
        max_tokens=max_tokens,
        temperature=0,
    )
    return resp.choices[0].message.content or ""


def load_annotations(path: str = None) -> dict:
    with open(path or VIDEO_ANNOTATIONS_PATH, encoding="utf-8") as f:
        return json.load(f)


def strip_code_fences(raw: str) -> str:
    cleaned = raw.strip()
    if cleaned.startswith("```"):
        cleaned = cleaned.split("\n", 1)[1] if "\n" in cleaned else ""
        cleaned = cleaned.rsplit("```", 1)[0]
    return cleaned.strip()


def parse_task_ids(raw: str) -> list[str]:
    try:
        parsed = json.loads(strip_code_fences(raw) or "[]")
    except json.JSONDecodeError as e:
        raise AIResponseError(raw) from e
    if not isinstance(parsed, list):
        raise AIResponseError(raw)
    return [str(item) for item in parsed]


def fallback_completions(tasks: list[dict]) -> list[str]:
    return [t["id"] for t in tasks[:math.ceil(len(tasks) / 2)]]


def evaluate_task_completion(annotations: dict, tasks: list[dict]) -> tuple[list[str], bool]:
    """Ask the model which tasks the bodycam annotations show as finished.

    ``tasks`` are dicts with ``id``, ``name`` and ``description``. Returns the
    suggested ids and whether the deterministic fallback was used because the
    provider could not be reached.
    """
    system = """You are an objective construction progress evaluator.
You receive a timeline of observations from a worker's bodycam video, as a JSON map of
timestamps to activity descriptions, and the list of tasks the worker claimed to work on.
For each task decide whether the annotations give sufficient evidence that it is completed.
Respond ONLY with a JSON array of the exact task ids to mark completed, e.g. ["id1", "id2"].
Return [] if none were completed. No markdown."""

    task_lines = "\n".join(
        f"- Task ID: {t['id']}\n  Name: {t['name']}\n  Description: {t.get('description') or 'none'}"
        for t in tasks
    )
    user = f"""Video Annotations:
{json.dumps(annotations, indent=2)}

Tasks:
{task_lines}"""

    try:
        raw = _chat(system, user, 500)
    except Exception:
        logger.exception("AI provider unavailable, using fallback suggestions for %d tasks", len(tasks))
        return fallback_completions(tasks), True

    logger.debug("AI raw response: %s", raw)
    return parse_task_ids(raw), False
