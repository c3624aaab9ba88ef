from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List

import pytest

from selextract import EPOCH, Parser


PROFILE_HTML = """
<html>
<head><title>mikaelhg</title></head>
<body>
  <div class="vcard">
    <div class="p-name">Jane Doe</div>
    <span class="p-nickname">jdoe</span>
    <span class="followers">1234</span>
    <span class="rating">4.5</span>
    <span class="x">N/A</span>
    <time class="joined" datetime="2019-06-01">June 2019</time>
    <a class="homepage" href="/jdoe/site">Site</a>
  </div>
  <ul class="repos">
    <li class="repo" data-lang="python"><span class="name">ksoup</span><span class="stars">12</span></li>
    <li class="repo" data-lang="kotlin"><span class="name">retrofit</span><span class="stars">7</span></li>
    <li class="repo" data-lang="python"><span class="name">scraper</span><span class="stars">oops</span></li>
  </ul>
  <ul class="tags">
    <li class="tag">html</li>
    <li class="tag">css</li>
  </ul>
  <ul class="topics">
    <li class="topic">parsing</li>
    <li class="topic">scraping</li>
    <li class="topic">dsl</li>
  </ul>
</body>
</html>
"""


@dataclass
class Repo:
    name: str = ""
    stars: int = 0


@dataclass
class Profile:
    full_name: str = ""
    username: str = ""
    followers: int = 0
    rating: float = 0.0
    missing: int = 0
    joined: datetime = EPOCH
    homepage: str = ""
    labels: List[str] = field(default_factory=list)
    languages: Dict[str, str] = field(default_factory=dict)
    repos: List[Repo] = field(default_factory=list)


@pytest.fixture
def profile_html():
    return PROFILE_HTML


@pytest.fixture
def repo_parser():
    parser = Parser(Repo)
    parser.text(".name", "name")
    parser.int(".stars", "stars")
    return parser
