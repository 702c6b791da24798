"""
Best-effort cookie-consent dismissal.

Tries a list of button phrases against the page and clicks the first visible
match. Whatever happens, it returns a bool and never raises into the caller.
"""

import logging

from playwright.async_api import Error as PlaywrightError

logger = logging.getLogger(__name__)

DEFAULT_CONSENT_PHRASES = [
    # Accept
    "Accept", "Accept All", "Accept Cookies", "Accept All Cookies",
    "Accept Selected", "Accept Necessary",
    # Allow
    "Allow", "Allow All", "Allow Cookies", "Allow All Cookies",
    "Allow Selected", "Allow Necessary",
    # Agree
    "I Accept", "I Agree", "Agree", "Agree to All", "Agree to Cookies", "Agree to All Cookies",
    # Confirmations
    "OK", "Got it", "Continue", "Proceed", "Confirm", "Yes", "Yes, I agree", "Yes, accept all",
    # Privacy / GDPR
    "Accept Privacy Policy", "Accept Terms", "Accept Terms and Conditions",
    "Accept Privacy Settings", "Accept Cookie Policy",
    # Close / dismiss
    "Close", "Dismiss", "Close Banner", "Dismiss Banner", "Close Notice", "Dismiss Notice",
    # French, German, Spanish
    "Accepter", "Accepter tout", "Accepter les cookies", "Accepter tous les cookies",
    "Zustimmen", "Alle akzeptieren", "Cookies akzeptieren", "Alle Cookies akzeptieren",
    "Aceptar", "Aceptar todo", "Aceptar cookies", "Aceptar todas las cookies",
]

_UPPER = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
_LOWER = "abcdefghijklmnopqrstuvwxyz"


def consent_phrases(custom_text: str = "", extra_phrases=None) -> list[str]:
    """Phrases in the order they are tried: request text, configured extras, built-ins."""
    phrases = []
    for phrase in [custom_text, *(extra_phrases or []), *DEFAULT_CONSENT_PHRASES]:
        phrase = (phrase or "").strip()
        if phrase and phrase not in phrases:
            phrases.append(phrase)
    return phrases


def text_selector(phrase: str) -> str:
    escaped = phrase.replace("\\", "\\\\").replace('"', '\\"')
    return f'text="{escaped}"'


def contains_xpath(phrase: str) -> str | None:
    """Case-insensitive `contains(text(), ...)` XPath, or None if the phrase can't be quoted."""
    lowered = phrase.lower()
    if "'" in lowered:
        return None
    return (
        f"xpath=//*[contains(translate(text(), '{_UPPER}', '{_LOWER}'), '{lowered}')]"
    )


async def _click_first_visible(page, handles, phrase: str, how: str) -> bool:
    for handle in handles:
        try:
            if await handle.is_visible():
                await handle.click()
                logger.info(f"[cookies] clicked {how} match for \"{phrase}\"")
                return True
        except PlaywrightError as e:
            logger.debug(f"[cookies] click on \"{phrase}\" failed: {e}")
            continue
    return False


async def handle_cookie_consent(page, custom_text: str = "", extra_phrases=None,
                                settle_ms: int = 5000) -> bool:
    try:
        # Banners are often injected after load
        await page.wait_for_timeout(settle_ms)

        for phrase in consent_phrases(custom_text, extra_phrases):
            try:
                exact = await page.query_selector(text_selector(phrase))
                if exact and await _click_first_visible(page, [exact], phrase, "exact"):
                    await page.wait_for_timeout(1000)
                    return True

                xpath = contains_xpath(phrase)
                if xpath:
                    matches = await page.query_selector_all(xpath)
                    if await _click_first_visible(page, matches, phrase, "xpath"):
                        await page.wait_for_timeout(1000)
                        return True
            except PlaywrightError as e:
                logger.debug(f"[cookies] phrase \"{phrase}\" failed: {e}")
                continue

        logger.info("[cookies] no consent banner found")
        return False
    except Exception as e:
        logger.warning(f"[cookies] consent handling failed: {e}")
        return False
