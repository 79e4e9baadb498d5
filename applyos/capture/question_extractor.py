"""
Form Question Extractor - Labelled fields of an application form.

Used by quick capture to pre-populate an application's questions from
the form the user is looking at.
"""
from dataclasses import dataclass
from typing import Dict, List, Optional

from bs4 import BeautifulSoup, Tag

MIN_LABEL_LENGTH = 5
MIN_SIBLING_TEXT = 3
SKIPPED_INPUT_TYPES = {"hidden", "submit", "button", "reset", "image"}
CHROME_TAGS = ["nav", "header", "footer"]
SIBLING_LABEL_TAGS = {"h1", "h2", "h3", "h4", "h5", "h6", "p", "span", "div", "label"}


@dataclass
class FormQuestion:
    text: str
    type: str
    required: bool
    options: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, object]:
        data: Dict[str, object] = {"text": self.text, "type": self.type, "required": self.required}
        if self.options is not None:
            data["options"] = self.options
        return data


def _is_hidden(field: Tag) -> bool:
    if field.name == "input" and (field.get("type") or "").lower() in SKIPPED_INPUT_TYPES:
        return True
    for node in [field, *field.parents]:
        if not isinstance(node, Tag):
            continue
        if node.has_attr("hidden"):
            return True
        style = (node.get("style") or "").replace(" ", "").lower()
        if "display:none" in style or "visibility:hidden" in style:
            return True
    return False


def _clean(text: Optional[str]) -> Optional[str]:
    if not text:
        return None
    return " ".join(text.split()) or None


def find_label(soup: BeautifulSoup, field: Tag) -> Optional[str]:
    """
    Resolve a field's label in order: label[for], aria-label,
    aria-labelledby, wrapping <label>, preceding text sibling.
    """
    field_id = field.get("id")
    if field_id:
        label = soup.find("label", attrs={"for": field_id})
        if label is not None:
            return _clean(label.get_text(" "))

    aria_label = field.get("aria-label")
    if aria_label and aria_label.strip():
        return _clean(aria_label)

    labelled_by = field.get("aria-labelledby")
    if labelled_by:
        label = soup.find(id=labelled_by.split()[0])
        if label is not None:
            return _clean(label.get_text(" "))

    parent_label = field.find_parent("label")
    if parent_label is not None:
        texts = [
            s for s in parent_label.find_all(string=True)
            if not any(p.name in ("input", "textarea", "select") for p in s.parents if isinstance(p, Tag))
        ]
        return _clean(" ".join(texts))

    for sibling in field.find_previous_siblings():
        if sibling.name in SIBLING_LABEL_TAGS:
            text = sibling.get_text(" ", strip=True)
            if len(text) > MIN_SIBLING_TEXT:
                return _clean(text)

    return None


def field_type(field: Tag) -> str:
    if field.name == "textarea":
        return "textarea"
    if field.name == "select":
        return "select"
    input_type = (field.get("type") or "").lower()
    if input_type in ("checkbox", "radio", "file"):
        return input_type
    return "text"


def _is_required(field: Tag) -> bool:
    return field.has_attr("required") or (field.get("aria-required") or "").lower() == "true"


def extract_form_questions(html: str) -> List[FormQuestion]:
    """Every labelled visible field outside page chrome, de-duplicated by (text, type)."""
    soup = BeautifulSoup(html or "", "html.parser")
    questions: List[FormQuestion] = []
    seen = set()

    for field in soup.find_all(["input", "textarea", "select"]):
        if _is_hidden(field):
            continue
        if field.find_parent(CHROME_TAGS) is not None:
            continue

        label = find_label(soup, field)
        if not label or len(label) < MIN_LABEL_LENGTH:
            continue

        kind = field_type(field)
        if (label, kind) in seen:
            continue
        seen.add((label, kind))

        options = None
        if kind == "select":
            options = [o.get_text(strip=True) for o in field.find_all("option") if o.get_text(strip=True)]

        questions.append(FormQuestion(text=label, type=kind, required=_is_required(field), options=options))

    return questions
