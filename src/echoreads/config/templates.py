# Default config template
DEFAULT_CONFIG_TEMPLATE = """{{
  "api_url": "{api_url}",
  "request_timeout": 10.0,

  "session": {{
    "session_file": "{session_file}",
    "settle_delay": 1.5,
    "populate_timeout": 5.0
  }}
}}"""
