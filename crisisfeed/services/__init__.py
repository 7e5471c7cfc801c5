"""Services for crisisfeed."""

from crisisfeed.services.cache import ResultCache
from crisisfeed.services.coercer import SchemaCoercer
from crisisfeed.services.fallback import FallbackProvider
from crisisfeed.services.model_invoker import ModelInvoker, create_invoker
from crisisfeed.services.pipeline import AnalysisPipeline, PipelineResult
from crisisfeed.services.prompts import PromptBuilder
from crisisfeed.services.sanitizer import sanitize
from crisisfeed.services.validator import DataValidator

__all__ = [
    "AnalysisPipeline",
    "DataValidator",
    "FallbackProvider",
    "ModelInvoker",
    "PipelineResult",
    "PromptBuilder",
    "ResultCache",
    "SchemaCoercer",
    "create_invoker",
    "sanitize",
]
