"""Test configuration ensuring local package import when editable install not active.

Also provides small Jira XML exports and store fixtures shared by the tests.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from jira_report.core.store import TaskStore  # noqa: E402
from jira_report.core.user_config import UserConfig  # noqa: E402

TWO_ITEMS_XML = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="0.92">
  <channel>
    <title>Jira export</title>
    <item>
      <key id="10001">A-1</key>
      <summary>First ticket</summary>
      <status id="1">Open</status>
      <priority id="2">High</priority>
      <reporter username="alice">Alice</reporter>
    </item>
    <item>
      <key id="10002">A-2</key>
      <summary>Second ticket</summary>
      <status id="5">Resolved</status>
      <priority id="3">Medium</priority>
      <reporter username="bob">Bob</reporter>
    </item>
  </channel>
</rss>
"""

FULL_ITEM_XML = """<rss>
  <channel>
    <item>
      <title>[PROJ-123] Ticket title</title>
      <link>https://jira.example.com/browse/PROJ-123</link>
      <key id="10123"> proj-123 </key>
      <summary>  [Alpha] Fix the login page  </summary>
      <description>&lt;p&gt;Details&lt;/p&gt;</description>
      <type id="1">Bug</type>
      <status id="3">En développement</status>
      <priority id="1">Highest</priority>
      <assignee username="jdoe"></assignee>
      <reporter username="jane">Jane Doe</reporter>
      <project id="1" key="PROJ">Project Name</project>
      <created>Mon, 15 Jan 2024 10:00:00 +0100</created>
      <updated>Sat, 20 Jan 2024 15:30:00 +0100</updated>
      <due>Mon, 01 Jan 1900 00:00:00 +0000</due>
      <resolution>Unresolved</resolution>
      <labels>
        <label>frontend</label>
        <label>urgent</label>
      </labels>
      <component>Web</component>
      <component>Auth</component>
      <fixVersion>1.0</fixVersion>
    </item>
    <item>
      <summary>No key here</summary>
    </item>
  </channel>
</rss>
"""


@pytest.fixture
def config():
    return UserConfig()


@pytest.fixture
def store(config):
    return TaskStore(config)


@pytest.fixture
def two_items_xml():
    return TWO_ITEMS_XML


@pytest.fixture
def full_item_xml():
    return FULL_ITEM_XML
