"""Knowledge base text handed to the KB search assistant."""

import logging
from pathlib import Path

from .settings import get_settings

logger = logging.getLogger(__name__)


SAMPLE_KNOWLEDGE_BASE = """
## Account Management
**Q: How do I reset my password?**
A: You can reset your password by clicking the "Forgot Password" link on the login page. You'll receive an email with instructions. If you don't see the email, please check your spam folder. This process usually takes a few minutes.

**Q: I'm locked out of my account. What should I do?**
A: Accounts are temporarily locked after 5 consecutive failed login attempts for security reasons. Please wait 15 minutes and try again with your correct credentials. Alternatively, use the "Forgot Password" link to reset your password. For persistent issues, contacting support directly might be necessary if these steps fail.

**Q: How can I update my email address?**
A: To update your email address, log in to your account, navigate to the 'Account Settings' or 'Profile' page, and look for an option to change your email. You may need to verify the new email address.

**Q: Is there a free trial available?**
A: Yes, we offer a 14-day free trial for new users to explore all premium features. No credit card is required to start the trial.

## Technical Issues
**Q: The application is running very slow on my computer.**
A: Slowness can be caused by several factors. First, ensure you have a stable and fast internet connection. Second, try clearing your web browser's cache and cookies, as outdated data can sometimes cause performance issues. Third, make sure your browser is updated to the latest version. If the issue persists, please provide details about your browser, operating system, and the specific actions that are slow, so we can investigate further.

**Q: I encountered an error message: "Error Code 500 - Internal Server Error".**
A: An "Error Code 500" typically indicates a temporary problem on our servers. Our team is usually alerted to these issues automatically. Please try performing the action again in a few minutes. If the problem continues for an extended period, please report it to our support team with the approximate time of occurrence and what you were trying to do.

**Q: The main dashboard is not loading correctly.**
A: If the dashboard isn't loading, first try a hard refresh (Ctrl+Shift+R or Cmd+Shift+R). If that doesn't work, check if there are any browser extensions that might be interfering. You can try accessing the dashboard in an incognito/private browsing window to see if an extension is the cause. Also, ensure JavaScript is enabled in your browser.
"""


def load_knowledge_base(path: Path | None = None) -> str:
    """Return the knowledge base text.

    Reads `path` (or the configured `knowledge_base_path`) when set and falls
    back to the bundled sample FAQ when the file is missing.
    """
    kb_path = path or get_settings().knowledge_base_path
    if kb_path is None:
        return SAMPLE_KNOWLEDGE_BASE
    try:
        return Path(kb_path).read_text(encoding="utf-8")
    except OSError as e:
        logger.warning("Knowledge base file %s unreadable, using sample: %s", kb_path, e)
        return SAMPLE_KNOWLEDGE_BASE
