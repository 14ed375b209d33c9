"""Shared fixtures: sample Atom documents shaped like a Canvas announcements feed."""

from __future__ import annotations

from html import escape

import pytest


def make_entry(
    entry_id: str | None,
    title: str,
    published: str | None = "2020-01-02T10:00:00-05:00",
    author: str = "Jane Q. Public",
    content: str = "<p><b>Exam Friday</b></p>",
    link: str | None = "https://gatech.instructure.com/courses/1/discussion_topics/2",
) -> str:
    parts = ["  <entry>", f"    <title>{escape(title)}</title>"]
    if link is not None:
        parts.append(f'    <link rel="alternate" href="{escape(link)}"/>')
    parts.append(f"    <author>\n      <name>{escape(author)}</name>\n    </author>")
    parts.append("    <updated>2020-01-03T00:00:00Z</updated>")
    if published is not None:
        parts.append(f"    <published>{published}</published>")
    if entry_id is not None:
        parts.append(f"    <id>{escape(entry_id)}</id>")
    parts.append(f'    <content type="html">{escape(content)}</content>')
    parts.append("  </entry>")
    return "\n".join(parts)


def make_feed(*entries: str) -> str:
    head = """<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>CS 1332 Announcements Feed</title>
  <link rel="alternate" href="https://gatech.instructure.com/courses/1"/>
  <id>tag:canvas.instructure.com,2020-01-01:/feeds/announcements/course_1</id>
  <updated>2020-01-03T00:00:00Z</updated>
  <author>
    <name>Feed Owner Person</name>
  </author>
"""
    return head + "\n".join(entries) + "\n</feed>\n"


@pytest.fixture
def canvas_feed() -> str:
    """Two entries, newest first, the way Canvas publishes them."""
    return make_feed(
        make_entry(
            "tag:canvas,2020:announcement_2",
            "  Exam moved  ",
            published="2020-01-02T10:00:00-05:00",
            content='<p><b>Exam Friday</b></p><p>See <a href="/syllabus">here</a></p>',
        ),
        make_entry(
            "tag:canvas,2020:announcement_1",
            "Welcome",
            published="2020-01-01T09:00:00Z",
            author="John Smith",
            content="<p>Hello <i>class</i></p>",
            link="https://gatech.instructure.com/courses/1/discussion_topics/1",
        ),
    )
