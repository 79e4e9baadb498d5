"""
Posting Extractors - Pull title, company and details out of a job page.

Each supported board has its own CSS selectors. Pages on other sites,
or board pages whose extractor raises, go through the generic fallback
(h1 or <title>, og:site_name, main/body text).
"""
import re
from dataclasses import asdict, dataclass, field
from typing import Callable, Dict, List, Optional

from bs4 import BeautifulSoup, Comment

from applyos.capture.page_detector import PageDetection, detect_page, find_job_posting_data
from applyos.core.logging_config import get_logger

logger = get_logger(__name__)

FALLBACK_PLATFORM = "unknown-ai-fallback"
FALLBACK_CONFIDENCE = 0.4
FALLBACK_DESCRIPTION_LIMIT = 2000
EMPLOYMENT_TYPES = ("full-time", "part-time", "contract", "temporary")


@dataclass
class ExtractedPosting:
    url: str
    platform: str
    confidence: float
    title: Optional[str] = None
    company: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    salary: Optional[str] = None
    employment_type: Optional[str] = None
    deadline: Optional[str] = None
    requirements: Optional[List[str]] = field(default=None)
    benefits: Optional[List[str]] = field(default=None)

    def to_dict(self) -> Dict[str, object]:
        data = asdict(self)
        data["employmentType"] = data.pop("employment_type")
        return data


def _text(soup: BeautifulSoup, *selectors: str) -> Optional[str]:
    """Stripped text of the first selector that matches with non-empty text."""
    for selector in selectors:
        node = soup.select_one(selector)
        if node is not None:
            text = node.get_text(" ", strip=True)
            if text:
                return text
    return None


def _inner_html(soup: BeautifulSoup, *selectors: str) -> Optional[str]:
    for selector in selectors:
        node = soup.select_one(selector)
        if node is not None:
            for comment in node.find_all(string=lambda s: isinstance(s, Comment)):
                comment.extract()
            html = node.decode_contents().strip()
            if html:
                return html
    return None


def _title_prefix(soup: BeautifulSoup) -> Optional[str]:
    """'Acme - Senior Engineer' -> 'Acme'."""
    title = soup.title.get_text() if soup.title else ""
    prefix = title.split("-")[0].strip()
    return prefix or None


def _confidence(required_found: bool, high: float = 0.9, low: float = 0.5) -> float:
    return high if required_found else low


def extract_linkedin(url: str, soup: BeautifulSoup) -> ExtractedPosting:
    title = _text(soup, ".job-details-jobs-unified-top-card__job-title", "h1")
    company = _text(
        soup,
        ".job-details-jobs-unified-top-card__company-name",
        ".jobs-unified-top-card__company-name",
    )

    employment_type = None
    for item in soup.select(".job-details-jobs-unified-top-card__job-insight span"):
        text = item.get_text(" ", strip=True)
        if any(kind in text.lower() for kind in EMPLOYMENT_TYPES):
            employment_type = text
            break

    return ExtractedPosting(
        url=url,
        platform="linkedin",
        confidence=_confidence(bool(title and company)),
        title=title,
        company=company,
        location=_text(soup, ".job-details-jobs-unified-top-card__bullet", ".jobs-unified-top-card__bullet"),
        description=_inner_html(soup, ".jobs-description__content", "#job-details"),
        salary=_text(soup, ".salary-main-rail__salary-info"),
        employment_type=employment_type,
    )


def extract_indeed(url: str, soup: BeautifulSoup) -> ExtractedPosting:
    title = _text(soup, ".jobsearch-JobInfoHeader-title")
    company = _text(soup, '[data-testid="inlineHeader-companyName"]', ".jobsearch-CompanyInfoContainer a")
    return ExtractedPosting(
        url=url,
        platform="indeed",
        confidence=_confidence(bool(title and company)),
        title=title,
        company=company,
        location=_text(soup, '[data-testid="inlineHeader-companyLocation"]'),
        description=_inner_html(soup, "#jobDescriptionText"),
        salary=_text(soup, "#salaryInfoAndJobType"),
    )


def extract_workday(url: str, soup: BeautifulSoup) -> ExtractedPosting:
    title = _text(soup, '[data-automation-id="jobPostingHeader"]')
    return ExtractedPosting(
        url=url,
        platform="workday",
        confidence=_confidence(bool(title), high=0.8, low=0.4),
        title=title,
        company=_title_prefix(soup),
        location=_text(soup, '[data-automation-id="jobPostingHeader"] + div'),
        description=_inner_html(soup, '[data-automation-id="jobPostingDescription"]'),
        employment_type=_text(soup, '[data-automation-id="jobPostingTimeType"]'),
    )


def extract_greenhouse(url: str, soup: BeautifulSoup) -> ExtractedPosting:
    title = _text(soup, ".app-title", "h1.app-title")
    company = _text(soup, ".company-name")
    if company and company.startswith("at "):
        company = company[3:].strip()
    return ExtractedPosting(
        url=url,
        platform="greenhouse",
        confidence=_confidence(bool(title)),
        title=title,
        company=company,
        location=_text(soup, ".location"),
        description=_inner_html(soup, "#content"),
    )


def extract_lever(url: str, soup: BeautifulSoup) -> ExtractedPosting:
    title = _text(soup, ".posting-headline h2")
    return ExtractedPosting(
        url=url,
        platform="lever",
        confidence=_confidence(bool(title)),
        title=title,
        company=_title_prefix(soup),
        location=_text(soup, ".posting-categories .location"),
        description=_text(soup, ".posting-description"),
        employment_type=_text(soup, ".posting-categories .commitment"),
    )


def extract_glassdoor(url: str, soup: BeautifulSoup) -> ExtractedPosting:
    title = _text(soup, '[data-test="job-title"]')
    company = _text(soup, '[data-test="employer-name"]')
    if company:
        # Employer names are followed by a star rating
        company = re.split(r"\d", company, maxsplit=1)[0].strip() or None
    return ExtractedPosting(
        url=url,
        platform="glassdoor",
        confidence=_confidence(bool(title and company)),
        title=title,
        company=company,
        location=_text(soup, '[data-test="location"]'),
        description=_text(soup, ".jobDescriptionContent"),
        salary=_text(soup, '[data-test="salary-info"]'),
    )


def extract_fallback(url: str, soup: BeautifulSoup) -> ExtractedPosting:
    """Generic extraction for unknown sites, enriched by JSON-LD when present."""
    title = _text(soup, "h1") or (soup.title.get_text(strip=True) if soup.title else None) or None

    site_name = soup.find("meta", attrs={"property": "og:site_name"})
    company = site_name.get("content").strip() if site_name and site_name.get("content") else None

    description = _inner_html(soup, "main")
    if description is None and soup.body is not None:
        description = soup.body.get_text(" ", strip=True)[:FALLBACK_DESCRIPTION_LIMIT] or None

    posting = ExtractedPosting(
        url=url,
        platform=FALLBACK_PLATFORM,
        confidence=FALLBACK_CONFIDENCE,
        title=title,
        company=company,
        description=description,
    )

    data = find_job_posting_data(soup)
    if data:
        organization = data.get("hiringOrganization")
        if isinstance(organization, dict) and organization.get("name"):
            posting.company = posting.company or str(organization["name"]).strip()
        posting.title = str(data.get("title") or "").strip() or posting.title
        posting.employment_type = _first_string(data.get("employmentType"))
        posting.deadline = _first_string(data.get("validThrough"))

    return posting


def _first_string(value) -> Optional[str]:
    if isinstance(value, list):
        value = value[0] if value else None
    return str(value).strip() if value else None


EXTRACTORS: Dict[str, Callable[[str, BeautifulSoup], ExtractedPosting]] = {
    "linkedin": extract_linkedin,
    "indeed": extract_indeed,
    "workday": extract_workday,
    "greenhouse": extract_greenhouse,
    "lever": extract_lever,
    "glassdoor": extract_glassdoor,
}


def extract_posting(url: str, html: str, detection: Optional[PageDetection] = None) -> ExtractedPosting:
    """
    Extract posting data using the detected platform's extractor.

    Falls back to generic extraction for unknown platforms and when a
    platform extractor fails on an unexpected layout.
    """
    detection = detection or detect_page(url, html)
    soup = BeautifulSoup(html or "", "html.parser")

    extractor = EXTRACTORS.get(detection.platform)
    if extractor is not None:
        try:
            return extractor(url, soup)
        except (AttributeError, IndexError, TypeError) as e:
            logger.warning(f"{detection.platform} extractor failed on {url}: {e}")

    return extract_fallback(url, soup)
