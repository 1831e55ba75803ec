# scripts/polar_login_export.py
from __future__ import annotations
from playwright.sync_api import sync_playwright

from polar_weight_sync.config import get_settings
from polar_weight_sync.cookies import CookieStore


def main():
    settings = get_settings()
    store = CookieStore(settings.POLAR_COOKIES_FILE)  # what the uploader reads later

    with sync_playwright() as pw:
        browser = pw.chromium.launch(
            headless=False,
            args=[
                "--disable-blink-features=AutomationControlled",
            ],
        )
        context = browser.new_context(viewport={"width": 1280, "height": 900}, locale="en-US")

        # Hide navigator.webdriver early
        context.add_init_script("""
            Object.defineProperty(navigator, 'webdriver', { get: () => undefined });
        """)

        page = context.new_page()
        page.goto(settings.POLAR_AUTH_URL)

        print(
            "\n1) In the window that opened, sign in to Polar Flow."
            "\n2) Complete any extra verification if prompted."
            "\n3) Wait until the Flow diary loads fully."
        )
        input("\nWhen the diary is visible, press ENTER here to save cookies... ")

        if store.save(context.cookies()):
            print(f"\n✅ Saved cookies to: {store.path.resolve()}")
        else:
            print(f"\n❌ Could not write {store.path}")
        browser.close()


if __name__ == "__main__":
    main()
