import json, os
from redflag.knowledge_base import KnowledgeBase
from redflag.models import AnalyzeRequest
from redflag.pipeline import Analyzer
from redflag.rules import RuleEngine

BASE = os.path.dirname(os.path.dirname(__file__))
engine = RuleEngine(os.path.join(BASE, "rules", "rules.yaml"))
kb = KnowledgeBase.from_yaml(os.path.join(BASE, "rules", "scam_kb.yaml"))
analyzer = Analyzer(engine, kb)

samples = [
    {"kind": "text", "text": "Your account will be locked in 30 minutes. Verify immediately: https://bit.ly/lock-verify"},
    {"kind": "email", "emailMode": "work", "text": (
        "From: CEO <ceo.office@gmail.com>\n"
        "Reply-To: payments@quick-pay-secure-now.com\n"
        "Subject: Quick favor\n\n"
        "Are you available? I need 5 gift cards for a client today. Keep this confidential."
    )},
    {"kind": "email", "text": "BREAKING: They don't want you to know this! Share before it's deleted. Link in bio."},
]

for sample in samples:
    result = analyzer.analyze(AnalyzeRequest(**sample))
    print(json.dumps(result.model_dump(), indent=2))
