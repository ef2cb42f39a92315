#!/usr/bin/env python3
"""ACS Demographics MCP Server

Loads American Community Survey population data for Mexican and Salvadoran
communities across U.S. places, enriches it with age, income and education
breakdowns, and exposes the result as MCP tools.
"""

__version__ = "1.0.0"
__author__ = "Boston Core MCP Team"
