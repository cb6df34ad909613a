"""Navigator Relay Meta information.
   Navigator Relay bridges MCP agents to the IndexMeNow API over SSE,
   keeping per-connection API keys encrypted at rest.
"""
__title__ = 'navigator_relay'
__description__ = (
   'Navigator Relay bridges MCP agents to the IndexMeNow API '
   'over SSE with session-scoped encrypted credentials.'
)
__version__ = '1.0.0'
__copyright__ = 'Copyright (c) 2023 Jesus Lara'
__author__ = 'Jesus Lara'
__author_email__ = 'jesuslarag@gmail.com'
__license__ = 'Apache-2.0'
__url__ = 'https://github.com/phenobarbital/navigator-relay'
