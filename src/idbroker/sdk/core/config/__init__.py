"""Configuration loading for the broker and its authentication sources.

- `load_broker_config()`: broker settings (`config.yaml`)
- `load_sources_config()`: authentication source entries (`authsources.yaml`)
- `build_state_store()`: StateStore described by the broker settings
- `build_session_store()`: per-session data store with the configured
  lifetimes. The host web layer calls it once per user session when it
  builds the `RequestContext` of a request:

```python
config = load_broker_config()
state_store = build_state_store(config)
sources = load_sources_config(config.authsources)

def context_for(session_id: str, handlers: HandlerRegistry) -> RequestContext:
    return RequestContext(state_store, build_session_store(config, session_id), handlers)
```
"""

from .loader import (
    build_session_store,
    build_state_store,
    load_broker_config,
    load_sources_config,
)
from .models import BrokerConfigModel, SessionConfigModel, StateConfigModel

__all__ = [
    "BrokerConfigModel",
    "SessionConfigModel",
    "StateConfigModel",
    "build_session_store",
    "build_state_store",
    "load_broker_config",
    "load_sources_config",
]
