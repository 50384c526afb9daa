"""idbroker SDK - authentication source lifecycle and supporting configuration.

## Key Packages

### Authentication (`idbroker.sdk.auth`)
- `AuthSource`: base class every authentication source implements
- `complete_auth()`, `complete_logout()`: resume a suspended workflow
- `StateStore`, `SessionStore`: storage contracts for workflow and session data

### Core (`idbroker.sdk.core`)
- Configuration loading for the broker and its authentication sources
"""
