"""
Prompt builder for sentiment classification requests.

Responsible for:
- Loading and rendering Jinja2 templates (system + user prompts)
- Constructing the LLMGenerationRequest with the output JSON Schema
"""

from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader
import structlog

from sentiment_service.llm.response_parser import CLASSIFICATION_SCHEMA
from sentiment_service.models.enums import SentimentLabel
from sentiment_service.models.llm_models import LLMGenerationRequest


logger = structlog.get_logger(__name__)

DEFAULT_TEMPLATES_DIR = Path(__file__).parent / "templates"


class PromptBuilder:
    """
    Build LLM generation requests for a piece of text.

    Templates are loaded once at construction; rendering is cheap and
    stateless, so one builder is shared across requests.
    """

    def __init__(
        self,
        model: str,
        templates_dir: Optional[Path] = None,
        temperature: float = 0.0,
        max_tokens: int = 128,
        seed: Optional[int] = 42,
    ):
        """
        Initialize prompt builder.

        Args:
            model: Model name sent to the backend
            templates_dir: Directory with system_prompt.txt and
                user_prompt_template.txt (defaults to the bundled templates)
            temperature: Sampling temperature
            max_tokens: Generation limit
            seed: Sampling seed (fixed for reproducible labels)
        """
        self.templates_dir = Path(templates_dir) if templates_dir else DEFAULT_TEMPLATES_DIR
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.seed = seed
        self.json_schema = CLASSIFICATION_SCHEMA

        self.jinja_env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            trim_blocks=True,
            lstrip_blocks=True,
            autoescape=False,  # Prompts, not HTML
        )

        try:
            self.system_template = self.jinja_env.get_template("system_prompt.txt")
            self.user_template = self.jinja_env.get_template("user_prompt_template.txt")
        except Exception as e:
            logger.error(
                "Failed to load prompt templates",
                error=str(e),
                templates_dir=str(self.templates_dir),
            )
            raise

        logger.info(
            "PromptBuilder initialized",
            templates_dir=str(self.templates_dir),
            model=model,
            temperature=temperature,
        )

    def build_system_prompt(self) -> str:
        return self.system_template.render(
            labels=[label.value for label in SentimentLabel]
        ).strip()

    def build_user_prompt(self, text: str) -> str:
        return self.user_template.render(text=text).strip()

    def build_request(self, text: str) -> LLMGenerationRequest:
        """
        Build the complete generation request for one text.

        Args:
            text: Input text (already validated by the coordinator)

        Returns:
            LLMGenerationRequest carrying the classification JSON Schema
        """
        prompt = f"{self.build_system_prompt()}\n\n{self.build_user_prompt(text)}"
        return LLMGenerationRequest(
            prompt=prompt,
            model=self.model,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            format_schema=self.json_schema,
            seed=self.seed,
        )
