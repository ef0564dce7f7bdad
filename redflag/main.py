import os
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .knowledge_base import KnowledgeBase
from .llm import OpenAIClassifier
from .models import AnalyzeRequest, AnalysisResult
from .pipeline import Analyzer
from .rules import RuleEngine

# ------------------------------------------------------------------
#  Configuration
# ------------------------------------------------------------------
BASE_DIR = os.path.dirname(os.path.dirname(__file__))
RULES_PATH = os.getenv("RULES_PATH", os.path.join(BASE_DIR, "rules", "rules.yaml"))
KB_PATH = os.getenv("KB_PATH", os.path.join(BASE_DIR, "rules", "scam_kb.yaml"))
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
LLM_MODEL = os.getenv("LLM_MODEL", "gpt-4o-mini")
LLM_TIMEOUT = float(os.getenv("LLM_TIMEOUT", "8"))
MODEL_WEIGHT = float(os.getenv("MODEL_WEIGHT", "0.55"))  # external model weight

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Red Flag Analyzer", version="1.0.0")

# ------------------------------------------------------------------
#  Core Engine + Knowledge Base + optional classifier
# ------------------------------------------------------------------
engine = RuleEngine(RULES_PATH)
kb = KnowledgeBase.from_yaml(KB_PATH)
classifier = (
    OpenAIClassifier(OPENAI_API_KEY, model=LLM_MODEL, timeout_sec=LLM_TIMEOUT)
    if OPENAI_API_KEY else None
)
analyzer = Analyzer(engine, kb, classifier, model_weight=MODEL_WEIGHT)

logger.info(
    "Loaded %d rules and %d knowledge base entries; classifier %s",
    len(engine.rules), len(kb), f"enabled ({LLM_MODEL})" if classifier else "disabled (heuristic-only)",
)


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s", request.url.path)
    return JSONResponse(status_code=500, content={"error": "Server error"})

# ------------------------------------------------------------------
#  API Routes
# ------------------------------------------------------------------
@app.get("/health")
def health():
    return {"ok": True, "llm_enabled": analyzer.llm_enabled}


@app.get("/rules")
def get_rules():
    return engine.rules


@app.post("/rules/reload")
def reload_rules():
    engine.load_rules()
    return {"reloaded": True, "count": len(engine.rules)}


@app.post("/analyze", response_model=AnalysisResult)
def analyze(req: AnalyzeRequest):
    """
    Score a pasted text, email or social post and suggest what to do next.
    """
    return analyzer.analyze(req)
