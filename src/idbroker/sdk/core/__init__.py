"""idbroker SDK Core - configuration shared by the broker and its tools."""
