"""
Page Detector - Is this page a job posting, and on which platform?

Three layers, first confident answer wins:
1. URL rules for the big job boards (0.95)
2. schema.org JobPosting in JSON-LD (0.90)
3. DOM heuristics: page title, apply button, job headings (max 0.8)
"""
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from applyos.core.logging_config import get_logger

logger = get_logger(__name__)

URL_CONFIDENCE = 0.95
STRUCTURED_DATA_CONFIDENCE = 0.90
HEURISTIC_THRESHOLD = 50
HEURISTIC_MAX_CONFIDENCE = 0.8
# Heuristic hits below this are too weak to report as an application page
HEURISTIC_MIN_CONFIDENCE = 0.7

TITLE_KEYWORDS = ("job", "career", "position", "hiring")
APPLY_KEYWORDS = ("apply", "submit application")
HEADING_KEYWORDS = ("job description", "qualifications", "requirements")


@dataclass
class PageDetection:
    is_application_page: bool
    platform: str = "unknown"
    confidence: float = 0.0
    detection_method: str = "url"
    signals: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isApplicationPage": self.is_application_page,
            "platform": self.platform,
            "confidence": self.confidence,
            "metadata": {"detectionMethod": self.detection_method, "signals": self.signals},
        }


def _url_match(platform: str, signal: str) -> PageDetection:
    return PageDetection(True, platform, URL_CONFIDENCE, "url", [signal])


def detect_by_url(url: str, soup: Optional[BeautifulSoup] = None) -> Optional[PageDetection]:
    host = (urlparse(url).hostname or "").lower()

    if "linkedin.com" in host and "/jobs/" in url:
        return _url_match("linkedin", "linkedin-jobs-url")
    if "indeed.com" in host and ("/viewjob" in url or "/rc/clk" in url):
        return _url_match("indeed", "indeed-viewjob-url")
    if "myworkdayjobs.com" in host:
        return _url_match("workday", "workday-url")
    if "greenhouse.io" in host and ("/jobs/" in url or (soup is not None and soup.select_one("div#app_body"))):
        return _url_match("greenhouse", "greenhouse-url")
    if "lever.co" in host:
        return _url_match("lever", "lever-url")
    if "glassdoor.com" in host and "/job-listing/" in url:
        return _url_match("glassdoor", "glassdoor-url")
    return None


def find_job_posting_data(soup: BeautifulSoup) -> Optional[Dict[str, Any]]:
    """First JSON-LD JobPosting object on the page, if any."""
    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        try:
            data = json.loads(script.string or script.get_text() or "")
        except ValueError:
            continue
        candidates = data if isinstance(data, list) else [data]
        for candidate in candidates:
            if not isinstance(candidate, dict):
                continue
            if candidate.get("@type") == "JobPosting":
                return candidate
            for item in candidate.get("@graph") or []:
                if isinstance(item, dict) and item.get("@type") == "JobPosting":
                    return item
    return None


def detect_by_structured_data(soup: BeautifulSoup) -> Optional[PageDetection]:
    if find_job_posting_data(soup) is None:
        return None
    return PageDetection(True, "unknown", STRUCTURED_DATA_CONFIDENCE, "structured-data", ["schema-org-jobposting"])


def detect_by_heuristics(soup: BeautifulSoup) -> Optional[PageDetection]:
    signals: List[str] = []
    score = 0

    title = (soup.title.get_text() if soup.title else "").lower()
    if any(word in title for word in TITLE_KEYWORDS):
        score += 20
        signals.append("title-match")

    buttons = soup.select('button, a[role="button"], input[type="submit"]')
    button_texts = [(b.get_text() or b.get("value") or "").lower() for b in buttons]
    if any(keyword in text for text in button_texts for keyword in APPLY_KEYWORDS):
        score += 30
        signals.append("apply-button-found")

    headings = " ".join(h.get_text().lower() for h in soup.find_all(["h1", "h2", "h3"]))
    if any(keyword in headings for keyword in HEADING_KEYWORDS):
        score += 25
        signals.append("heading-match")

    if score < HEURISTIC_THRESHOLD:
        return None
    return PageDetection(True, "unknown", min(score / 100, HEURISTIC_MAX_CONFIDENCE), "heuristic", signals)


def detect_page(url: str, html: str = "") -> PageDetection:
    """Run the detection layers against a page's URL and HTML."""
    soup = BeautifulSoup(html or "", "html.parser")

    for result in (detect_by_url(url, soup), detect_by_structured_data(soup)):
        if result is not None:
            logger.debug(f"Detected {result.platform} page via {result.detection_method}: {url}")
            return result

    result = detect_by_heuristics(soup)
    if result is not None and result.confidence > HEURISTIC_MIN_CONFIDENCE:
        logger.debug(f"Detected page via heuristics {result.signals}: {url}")
        return result

    return PageDetection(is_application_page=False)
