"""
Domain Detector Agent - Guesses the application's business domain
"""
from typing import Any, Dict, List

from .base_agent import BaseAgent
from ..models.element import DomainProfile


# Iteration order is the tie-break order
DOMAIN_PROFILES: Dict[str, Dict[str, List[str]]] = {
    "E-commerce/Shopping": {
        "keywords": ["product", "cart", "checkout", "payment", "order", "shipping", "price",
                     "buy", "purchase", "catalog", "inventory", "store"],
        "functions": ["Product browsing", "Shopping cart management", "Payment processing", "Order tracking"],
        "test_areas": ["Purchase workflow", "Payment security", "Inventory management", "User account"]
    },
    "CRM/Customer Management": {
        "keywords": ["client", "customer", "case", "contact", "lead", "opportunity", "account",
                     "relationship", "sales", "pipeline"],
        "functions": ["Client management", "Case tracking", "Contact management", "Sales pipeline"],
        "test_areas": ["Client data integrity", "Case workflow", "Communication tracking", "Reporting"]
    },
    "Banking/Financial": {
        "keywords": ["account", "balance", "transfer", "transaction", "payment", "deposit",
                     "withdrawal", "loan", "credit", "debit", "finance"],
        "functions": ["Account management", "Money transfer", "Transaction history", "Payment processing"],
        "test_areas": ["Security", "Transaction accuracy", "Account balance", "Compliance"]
    },
    "Project Management": {
        "keywords": ["project", "task", "milestone", "deadline", "team", "assignment", "progress",
                     "status", "timeline", "resource"],
        "functions": ["Project tracking", "Task management", "Team collaboration", "Resource allocation"],
        "test_areas": ["Project workflow", "Task assignment", "Progress tracking", "Team communication"]
    },
    "Healthcare/Medical": {
        "keywords": ["patient", "appointment", "medical", "doctor", "treatment", "prescription",
                     "diagnosis", "health", "clinic", "hospital"],
        "functions": ["Patient management", "Appointment scheduling", "Medical records", "Treatment tracking"],
        "test_areas": ["Patient data security", "Appointment workflow", "Medical compliance", "Record integrity"]
    },
}

GENERAL_PROFILE = DomainProfile(
    domain="General Business Application",
    functions=["Data management", "Complex user workflows", "Multi-step business processes"],
    test_areas=["User experience", "Data integrity", "Workflow completion"],
    score=0
)


class DomainDetectorAgent(BaseAgent):
    """Scores page names and OCR text against fixed domain keyword sets."""

    def __init__(self):
        super().__init__(
            name="DomainDetector",
            description="Infers the business domain from page names and OCR text"
        )

    async def execute(self, context: Dict[str, Any]) -> Dict[str, Any]:
        """Execute domain detection."""
        domain = self.detect(
            context.get("page_names", []),
            context.get("ocr_results", [])
        )
        return {"domain": domain}

    def detect(self, page_names: List[str], ocr_results: List[str]) -> DomainProfile:
        """
        Pick the best-matching domain profile.

        A keyword counts once however often it appears. Ties keep the
        earlier profile; no hits at all yields the general profile.
        """
        all_text = " ".join([*page_names, *ocr_results]).lower()

        best = GENERAL_PROFILE
        for domain_name, profile in DOMAIN_PROFILES.items():
            score = sum(1 for keyword in profile["keywords"] if keyword in all_text)
            if score > best.score:
                best = DomainProfile(
                    domain=domain_name,
                    functions=profile["functions"],
                    test_areas=profile["test_areas"],
                    score=score
                )

        self.log_info(f"Detected domain: {best.domain} (score {best.score})")
        return best.model_copy(deep=True)
