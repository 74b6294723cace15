"""
Keyword-based topical classification for news records.

HOW IT WORKS:
  1. Each non-fallback category owns a static keyword list
  2. Title + description are lowercased and concatenated
  3. A category scores one point per keyword found as a substring
     (repeats don't count twice)
  4. Highest score wins; ties keep the category declared first in Category
  5. Zero matches falls back to Category.GENERAL

Pure and deterministic: safe to call inline for every record.
"""

import logging
from typing import Dict, List, Optional

from pulse.schemas.base import Category

logger = logging.getLogger(__name__)

# Iteration order follows Category declaration order (dicts preserve insertion).
CATEGORY_KEYWORDS: Dict[Category, List[str]] = {
    Category.SOFTWARE_ENGINEERING: [
        "code", "coding", "programming", "developer", "software", "ide", "copilot",
        "github", "devops", "api", "debug", "compiler", "agent", "agentic",
        "vscode", "cursor", "engineering", "deploy", "infrastructure", "backend",
        "frontend", "fullstack", "refactor", "testing", "ci/cd", "devin",
        "windsurf", "codegen", "autocomplete", "lint", "sdk", "framework",
    ],
    Category.CONTENT_GENERATION: [
        "image", "text", "writing", "art", "creative", "generative", "dall-e",
        "midjourney", "stable diffusion", "content", "generate", "prompt",
        "chatgpt", "claude", "gemini", "gpt", "llm", "language model",
        "copywriting", "blog", "article", "design", "illustration", "music",
        "audio", "voice", "synthetic", "flux", "imagen",
    ],
    Category.VIDEO_MEDIA: [
        "video", "sora", "animation", "deepfake", "synthesis", "film",
        "cinema", "veo", "kling", "runway", "pika", "luma", "streaming",
        "visual effects", "vfx", "motion", "clip", "youtube", "tiktok",
    ],
    Category.EDUCATION: [
        "learning", "tutor", "student", "course", "classroom", "teach",
        "education", "school", "university", "curriculum", "training",
        "skill", "certification", "academy", "lecture", "mooc", "khan",
        "duolingo", "personalized learning", "adaptive",
    ],
    Category.RESEARCH: [
        "paper", "model", "benchmark", "transformer", "arxiv", "neural",
        "deep learning", "machine learning", "dataset", "training",
        "fine-tune", "parameters", "weights", "inference", "architecture",
        "attention", "diffusion", "reinforcement", "rl", "rlhf", "dpo",
        "alignment", "safety", "interpretability", "scaling", "token",
        "multimodal", "foundation model", "open source", "hugging face",
        "openai", "anthropic", "google deepmind", "meta ai",
    ],
    Category.BUSINESS: [
        "startup", "funding", "enterprise", "market", "revenue", "valuation",
        "acquisition", "ipo", "investor", "venture", "billion", "million",
        "company", "ceo", "launch", "product", "saas", "b2b", "regulation",
        "policy", "governance", "ethics", "layoff", "hiring", "partnership",
    ],
}


def category_scores(title: str, description: Optional[str] = "") -> Dict[Category, int]:
    """Keyword hit count per non-fallback category, in declaration order."""
    text = f"{title or ''} {description or ''}".lower()
    return {
        category: sum(1 for keyword in keywords if keyword in text)
        for category, keywords in CATEGORY_KEYWORDS.items()
    }


def classify(title: str, description: Optional[str] = "") -> Category:
    """Assign the best-matching category, or GENERAL when nothing matches."""
    best_category = Category.GENERAL
    best_score = 0

    for category, score in category_scores(title, description).items():
        if score > best_score:
            best_score = score
            best_category = category

    return best_category
