"""Diff view links and the pull request comment that lists them."""

import logging

from .forge import ForgeClient
from .models import Comment, HostUser, PullRequest, WebrevDescription


logger = logging.getLogger(__name__)

WEBREV_COMMENT_MARKER = "<!-- mlbridge webrev comment -->"
WEBREV_HEADER_MARKER = "<!-- mlbridge webrev header -->"
WEBREV_LIST_MARKER = "<!-- mlbridge webrev list -->"


class ForgeWebrevGenerator:
    """Produces diff links using the forge's compare pages."""

    def __init__(self, client: ForgeClient):
        self.client = client

    def generate(
        self,
        pr: PullRequest,
        base: str,
        head: str,
        previous_head: str | None = None,
    ) -> list[WebrevDescription]:
        webrevs = [WebrevDescription("Full", self.client.compare_url(pr.repository, base, head))]
        if previous_head is not None and previous_head != head:
            webrevs.append(
                WebrevDescription("Incremental", self.client.compare_url(pr.repository, previous_head, head))
            )
        return webrevs


def format_webrevs(webrevs: list[WebrevDescription]) -> str:
    return " - ".join(f"[{webrev.label}]({webrev.uri})" for webrev in webrevs)


def update_webrev_comment(
    client: ForgeClient,
    pr: PullRequest,
    comments: list[Comment],
    bot_user: HostUser,
    index: int,
    webrevs: list[WebrevDescription],
) -> None:
    """Create or extend the single bot comment listing the webrevs of a PR.

    The comment is found by its marker, so no comment id has to be stored.
    The newest entry goes on top of the list of earlier revisions. Nothing
    is changed if the links are already listed.
    """
    existing = next(
        (c for c in comments if c.author == bot_user and WEBREV_COMMENT_MARKER in c.body),
        None,
    )
    descriptions = format_webrevs(webrevs)

    body = f"{WEBREV_COMMENT_MARKER}\n"
    body += f"{WEBREV_HEADER_MARKER}\n"
    body += "### Webrevs\n"
    body += f"{WEBREV_LIST_MARKER}\n"
    body += f" * {index:02d}: {descriptions} ({client.files_url(pr, pr.head_hash)})\n"

    if existing is None:
        client.add_comment(pr, body)
        return

    if descriptions in existing.body:
        logger.debug("Webrev links already posted - skipping update")
        return

    list_start = existing.body.find(WEBREV_LIST_MARKER)
    if list_start >= 0:
        body += existing.body[list_start + len(WEBREV_LIST_MARKER) + 1 :]
    else:
        logger.debug(f"Webrev comment {existing.id} on {pr} has no list marker - keeping its text below the new entry")
        previous = existing.body.replace(WEBREV_COMMENT_MARKER, "").replace(WEBREV_HEADER_MARKER, "")
        previous = previous.replace("### Webrevs", "").strip()
        if previous:
            body += f"\n{previous}\n"
    client.update_comment(pr, existing.id, body)
