"""
AI integration module for livingdocs.
"""

import asyncio
import json
import re
from functools import wraps
from typing import Any, Dict, List, Optional

import aiohttp
import anthropic
import openai

from .config import Config
from .constants import AI_PROVIDERS
from .documentation.models import DocumentationSection, RepositoryAnalysis, SectionType
from .exceptions import AnalysisFailure, ConfigurationError, GenerationFailure
from .prompts import API, ARCHITECTURE, CHANGE_ANALYSIS, COMPONENTS, OVERVIEW
from .specs.models import SpecChangeAnalysis
from .utils import count_words, logger

JSON_PATTERN = re.compile(r"\{[\s\S]*\}|\[[\s\S]*\]")

API_MARKERS = ("api/", "routes/", "controllers/")
COMPONENT_MARKERS = ("components/", "pages/")
SERVICE_MARKERS = ("services/", "lib/", "utils/")


def retry_on_error(max_retries: Optional[int] = None, delay: float = 1.0, backoff: float = 2.0):
    """Decorator to retry transient failures with exponential backoff.

    Without an explicit ``max_retries`` the instance's ``max_retries``
    attribute is used.
    """
    def decorator(func):
        @wraps(func)
        async def wrapper(self, *args, **kwargs):
            attempts = max_retries or getattr(self, 'max_retries', 3) or 1
            last_exception = None
            wait_time = delay

            for attempt in range(attempts):
                try:
                    return await func(self, *args, **kwargs)
                except (ConnectionError, asyncio.TimeoutError) as e:
                    last_exception = e
                    if attempt < attempts - 1:
                        logger.warning(f"Attempt {attempt + 1} failed: {e}. Retrying in {wait_time}s...")
                        await asyncio.sleep(wait_time)
                        wait_time *= backoff
                    else:
                        logger.error(f"All {attempts} attempts failed.")

            raise GenerationFailure(f"AI service unavailable: {last_exception}") from last_exception
        return wrapper
    return decorator


def extract_json(text: str) -> Any:
    """Parse the first JSON object or array embedded in a model response."""
    match = JSON_PATTERN.search(text or "")
    if not match:
        raise ValueError("No JSON found in response")
    return json.loads(match.group(0))


class AIAssistant:
    """Chat-completion client producing documentation sections and change analyses."""

    def __init__(self, config: Config):
        self.config = config
        ai = config.config.ai
        self.provider = ai.provider
        self.model = ai.model
        self.api_key = ai.api_key
        self.temperature = ai.temperature
        self.max_tokens = ai.max_tokens
        self.max_retries = ai.max_retries
        self.base_url = ai.base_url or AI_PROVIDERS.get(self.provider, {}).get('base_url')
        self.client = None

        self._validate_config()
        self._init_client()

    def _validate_config(self):
        """Validate AI configuration settings."""
        if self.provider not in AI_PROVIDERS:
            raise ConfigurationError(
                f"Unsupported AI provider: {self.provider}. Supported: {', '.join(AI_PROVIDERS)}"
            )

        supported_models = AI_PROVIDERS[self.provider].get('models', [])
        if self.provider != 'local' and self.model not in supported_models:
            logger.warning(
                f"Model '{self.model}' may not be supported by {self.provider}. "
                f"Supported models: {', '.join(supported_models)}"
            )

        if not 0 <= self.temperature <= 2:
            raise ConfigurationError(f"Temperature must be between 0 and 2, got {self.temperature}")

        if self.max_tokens <= 0:
            raise ConfigurationError(f"Max tokens must be positive, got {self.max_tokens}")

        logger.debug(
            f"AI Configuration: provider={self.provider}, model={self.model}, "
            f"temperature={self.temperature}, max_tokens={self.max_tokens}"
        )

    def _init_client(self):
        """Create the provider client when credentials are present."""
        if self.provider == 'local':
            return
        if not self.api_key:
            env_key = AI_PROVIDERS[self.provider]['env_key']
            logger.debug(f"No API key for {self.provider}; set {env_key} to enable generation")
            return

        if self.provider in ('openai', 'groq'):
            self.client = openai.AsyncOpenAI(api_key=self.api_key, base_url=self.base_url)
        elif self.provider == 'anthropic':
            self.client = anthropic.AsyncAnthropic(api_key=self.api_key)

    def is_available(self) -> bool:
        """True when a completion endpoint can be called."""
        return self.provider == 'local' or self.client is not None

    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        max_tokens: Optional[int] = None,
        json_mode: bool = False,
    ) -> str:
        """Run one completion and return its trimmed text.

        Raises:
            GenerationFailure: The provider failed or returned no content
        """
        if not self.is_available():
            raise GenerationFailure(f"AI provider {self.provider} is not configured")

        if self.provider in ('openai', 'groq'):
            content = await self._call_openai(prompt, system_prompt, max_tokens, json_mode)
        elif self.provider == 'anthropic':
            content = await self._call_anthropic(prompt, system_prompt, max_tokens)
        else:
            content = await self._call_local(prompt, system_prompt, max_tokens, json_mode)

        if not content or not content.strip():
            raise GenerationFailure("No content received from AI service")
        return content.strip()

    @retry_on_error()
    async def _call_openai(self, prompt, system_prompt=None, max_tokens=None, json_mode=False) -> str:
        """OpenAI-compatible chat completion (OpenAI and Groq)."""
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        options: Dict[str, Any] = {}
        if json_mode:
            options['response_format'] = {"type": "json_object"}

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.temperature,
                max_tokens=max_tokens or self.max_tokens,
                **options,
            )
        except (openai.APIConnectionError, openai.RateLimitError) as e:
            raise ConnectionError(str(e)) from e
        except openai.AuthenticationError as e:
            raise GenerationFailure(f"Invalid {self.provider} API key. Please check your configuration.") from e
        except openai.OpenAIError as e:
            raise GenerationFailure(f"{self.provider} API error: {e}") from e

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    @retry_on_error()
    async def _call_anthropic(self, prompt, system_prompt=None, max_tokens=None) -> str:
        """Anthropic messages API."""
        options: Dict[str, Any] = {}
        if system_prompt:
            options['system'] = system_prompt

        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=max_tokens or self.max_tokens,
                temperature=self.temperature,
                messages=[{"role": "user", "content": prompt}],
                **options,
            )
        except (anthropic.APIConnectionError, anthropic.RateLimitError) as e:
            raise ConnectionError(str(e)) from e
        except anthropic.AuthenticationError as e:
            raise GenerationFailure("Invalid Anthropic API key. Please check your configuration.") from e
        except anthropic.AnthropicError as e:
            raise GenerationFailure(f"Anthropic API error: {e}") from e

        return "".join(block.text for block in response.content if getattr(block, 'type', '') == 'text')

    @retry_on_error()
    async def _call_local(self, prompt, system_prompt=None, max_tokens=None, json_mode=False) -> str:
        """Call a local model server (e.g., Ollama)."""
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "stream": False,
            "options": {
                "temperature": self.temperature,
                "num_predict": max_tokens or self.max_tokens,
            },
        }
        if json_mode:
            payload["format"] = "json"

        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(f"{self.base_url}/api/chat", json=payload) as response:
                    if response.status != 200:
                        error_text = await response.text()
                        raise GenerationFailure(f"Local model API error: {error_text}")
                    data = await response.json()
        except aiohttp.ClientError as e:
            raise ConnectionError(f"Failed to connect to local model at {self.base_url}: {e}") from e

        return data.get("message", {}).get("content", "")

    async def generate_sections(self, analysis: RepositoryAnalysis) -> List[DocumentationSection]:
        """Draft overview, api, components and architecture sections.

        The api and components sections are only drafted when matching
        modules exist in the analyzed structure.
        """
        repository = analysis.repository
        sections = []

        overview = await self.generate(
            OVERVIEW.format(
                repository_name=repository.name,
                repository_description=repository.description or "No description provided",
                primary_language=analysis.summary.primary_language,
                structure_analysis=self._format_structure(analysis.structure),
                languages=self._format_languages(analysis.languages),
            ),
            system_prompt=OVERVIEW.system_prompt,
        )
        sections.append(self._section('overview', 'Project Overview', overview, SectionType.OVERVIEW))

        api_modules = self._matching(analysis.structure, API_MARKERS)
        if api_modules:
            content = await self.generate(
                API.format(
                    api_modules=json.dumps(api_modules, indent=2),
                    services=json.dumps(self._matching(analysis.structure, SERVICE_MARKERS), indent=2),
                    languages=json.dumps(analysis.languages, indent=2),
                ),
                system_prompt=API.system_prompt,
            )
            sections.append(self._section('api', 'API Documentation', content, SectionType.API))

        components = self._matching(analysis.structure, COMPONENT_MARKERS, name_marker='Component')
        if components:
            content = await self.generate(
                COMPONENTS.format(
                    components=json.dumps(components, indent=2),
                    structure=self._format_structure(analysis.structure, limit=10),
                ),
                system_prompt=COMPONENTS.system_prompt,
            )
            sections.append(self._section(
                'components', 'Component Documentation', content, SectionType.COMPONENTS
            ))

        architecture = await self.generate(
            ARCHITECTURE.format(
                repository_name=repository.name,
                languages=", ".join(analysis.languages) or analysis.summary.primary_language,
                total_files=analysis.summary.total_files,
                structure_analysis=self._format_structure(analysis.structure, limit=20),
            ),
            system_prompt=ARCHITECTURE.system_prompt,
        )
        sections.append(self._section(
            'architecture', 'Architecture Overview', architecture, SectionType.ARCHITECTURE
        ))

        return sections

    async def analyze_diff(self, old: str, new: str, title: str) -> SpecChangeAnalysis:
        """Classify an edit of a documentation section.

        Raises:
            AnalysisFailure: The model call failed or returned unparseable output
        """
        if not self.is_available():
            return SpecChangeAnalysis(
                has_significant_changes=False,
                change_analysis="AI service not available for analysis",
            )

        prompt = CHANGE_ANALYSIS.format(section_title=title, old_content=old, new_content=new)
        try:
            response = await self.generate(
                prompt,
                system_prompt=CHANGE_ANALYSIS.system_prompt,
                max_tokens=1024,
                json_mode=True,
            )
            data = extract_json(response)
        except GenerationFailure as e:
            raise AnalysisFailure(f"Change analysis failed: {e}") from e
        except ValueError as e:
            raise AnalysisFailure(f"Could not parse change analysis: {e}") from e

        if not isinstance(data, dict):
            raise AnalysisFailure("Change analysis returned a JSON array, expected an object")
        return SpecChangeAnalysis.from_dict(data)

    def get_provider_info(self) -> Dict[str, Any]:
        """Get information about the current AI provider."""
        info = AI_PROVIDERS.get(self.provider, {})
        return {
            'provider': self.provider,
            'model': self.model,
            'available': self.is_available(),
            'base_url': self.base_url,
            'supported_models': info.get('models', []),
            'temperature': self.temperature,
            'max_tokens': self.max_tokens,
        }

    @staticmethod
    def _section(section_id: str, title: str, content: str, section_type: SectionType) -> DocumentationSection:
        return DocumentationSection(
            id=section_id,
            title=title,
            content=content,
            type=section_type,
            word_count=count_words(content),
        )

    @staticmethod
    def _format_structure(structure: Dict[str, Any], limit: int = 15) -> str:
        lines = []
        for path in sorted(structure)[:limit]:
            info = structure[path]
            kind = info.get('type', 'file') if isinstance(info, dict) else 'file'
            lines.append(f"- {path} ({kind})")
        return "\n".join(lines)

    @staticmethod
    def _format_languages(languages: Dict[str, int]) -> str:
        return "\n".join(f"- {language}: {lines} lines" for language, lines in languages.items())

    @staticmethod
    def _matching(structure: Dict[str, Any], markers, name_marker: Optional[str] = None) -> List[str]:
        matches = []
        for path in sorted(structure):
            name = path.rsplit('/', 1)[-1]
            if any(marker in path for marker in markers) or (name_marker and name_marker in name):
                matches.append(path)
        return matches
