from typing import Optional
from urllib.parse import urlsplit


class PermalinkPagePaths:
    """Derives a subject's page path from its permalink.

    The permalink is `template.format(subject_id=...)`; only its path
    component is sent to the analytics API.
    """

    def __init__(self, template: str):
        self.template = template

    def permalink(self, subject_id: int) -> str:
        return self.template.format(subject_id=subject_id)

    def page_path(self, subject_id: int) -> Optional[str]:
        try:
            path = urlsplit(self.permalink(subject_id)).path
        except ValueError:
            return None
        return path or None
