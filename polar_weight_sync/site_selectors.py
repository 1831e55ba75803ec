"""
Site-specific selectors for Polar Flow, in priority order.

Each chain is tried front to back by ``browser.first_match``; update these when
the site layout changes, the update logic itself does not need to move.
"""

# Login (auth.polar.com)
LOGIN_FORM_READY = 'input[name="email"], input[type="email"]'
LOGIN_EMAIL = (
    'input[name="email"]',
    'input[type="email"]',
    'input:not([type="password"]):not([type="checkbox"])',
)
LOGIN_PASSWORD = (
    'input[name="password"]',
    'input[type="password"]',
)
LOGIN_SUBMIT = (
    'button[type="submit"]',
    'input[type="submit"]',
    'button:has-text("Login")',
)

# Day page (flow.polar.com/training/day/DD.MM.YYYY)
DAILY_FORM = "#dailyDataForm"
WEIGHT_INPUT = '#weight, input[name="weight"]'
WEIGHT_INPUT_CHAIN = (
    "#weight",
    'input[name="weight"]',
)
SAVE_BUTTON = (
    "#saveDailyDataBtn",
)
# Any of these whose visible text contains SAVE_TEXT counts as a save control
SAVE_TEXT_CANDIDATES = "button, a.btn"
SAVE_TEXT = "save"

# Reads the structural fields of the day form; null when the form is not on the page
FORM_CONTEXT_JS = """
() => {
  const form = document.getElementById('dailyDataForm');
  if (!form) return null;
  const token = form.querySelector('input[name="csrfToken"]');
  const user = form.querySelector('input[name="userId"]');
  return {
    action: form.action,
    csrfToken: token ? token.value : null,
    userId: user ? user.value : null,
  };
}
"""

SUBMIT_FORM_JS = """
() => {
  const form = document.getElementById('dailyDataForm');
  if (!form) return false;
  form.submit();
  return true;
}
"""

CLICK_JS = "el => el.click()"

# Requests of these types are aborted; nothing we read depends on them
BLOCKED_RESOURCE_TYPES = frozenset({"image", "font", "stylesheet", "media", "other"})
