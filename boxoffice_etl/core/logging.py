import json, logging, sys
from datetime import datetime, timezone

# attributs standards d'un LogRecord : tout le reste vient de extra={...}
_RESERVED = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}

class JsonFormatter(logging.Formatter):
    def format(self, record):
        p={"ts":datetime.now(timezone.utc).isoformat(),
           "level":record.levelname,"logger":record.name,"msg":record.getMessage()}
        for k, v in record.__dict__.items():
            if k not in _RESERVED and k not in p:
                p[k]=v
        if record.exc_info: p["exc_info"]=self.formatException(record.exc_info)
        return json.dumps(p, ensure_ascii=False, default=str)
def configure_logging(level=logging.INFO):
    h=logging.StreamHandler(sys.stdout); h.setFormatter(JsonFormatter())
    root=logging.getLogger(); root.handlers.clear(); root.addHandler(h); root.setLevel(level)

class RunLogger(logging.LoggerAdapter):
    """Adapter portant le contexte d'un run (execution_id, ...) sur chaque ligne."""
    def process(self, msg, kwargs):
        extra = dict(self.extra)
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = extra
        return msg, kwargs

def run_logger(name: str, **context) -> RunLogger:
    return RunLogger(logging.getLogger(name), context)
