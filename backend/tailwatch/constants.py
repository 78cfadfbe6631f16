# backend/tailwatch/constants.py

"""
Global constants used across modules, including a single User-Agent string
sent with every outbound request so upstream operators can identify us.
"""

USER_AGENT = "tailwatch/1.0 (+https://github.com/tailwatch/tailwatch)"

#: Length of the rolling upstream quota window (seconds)
DAY_SECONDS = 86_400
