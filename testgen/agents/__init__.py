"""Agents package"""
from .base_agent import BaseAgent
from .element_classifier_agent import ElementClassifierAgent
from .domain_detector_agent import DomainDetectorAgent
from .prompt_builder_agent import PromptBuilderAgent
from .dispatcher_agent import DispatcherAgent
from .response_parser_agent import ResponseParserAgent
from .orchestrator_agent import OrchestratorAgent

__all__ = [
    "BaseAgent",
    "ElementClassifierAgent",
    "DomainDetectorAgent",
    "PromptBuilderAgent",
    "DispatcherAgent",
    "ResponseParserAgent",
    "OrchestratorAgent"
]
