"""idbroker - pluggable authentication sources for an identity broker."""
