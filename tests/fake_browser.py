"""In-process stand-ins for the slice of the Playwright async API the agent uses."""

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

FIELD_SELECTOR = "input, textarea"


class FakeElement:
    """A form control or button. ``attrs`` is what DESCRIBE_FIELD_JS would return."""

    def __init__(self, tag="input", type="", name="", id="", placeholder="",
                 aria_label="", label="", value="", click_error=None, visible=True):
        self.attrs = {
            "tag": tag, "type": type, "name": name, "id": id,
            "placeholder": placeholder, "aria_label": aria_label, "label": label,
        }
        self.value = value
        self.files = None
        self.clicks = 0
        self.fills = 0
        self.click_error = click_error
        self.visible = visible

    async def click(self, timeout=None):
        if self.click_error:
            raise self.click_error
        if not self.visible:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded: element is not visible")
        self.clicks += 1

    async def is_visible(self):
        return self.visible

    async def fill(self, value):
        self.value = value
        self.fills += 1

    async def input_value(self):
        return self.value

    async def evaluate(self, script):
        return dict(self.attrs)

    async def set_input_files(self, path):
        self.files = path


class FakeLocator:
    def __init__(self, elements):
        self.elements = list(elements)

    async def count(self):
        return len(self.elements)

    @property
    def first(self):
        return FakeLocator(self.elements[:1])

    def nth(self, index):
        return FakeLocator([self.elements[index]])

    def _one(self):
        if not self.elements:
            raise PlaywrightTimeoutError("locator resolved to no elements")
        return self.elements[0]

    async def click(self, timeout=None):
        await self._one().click(timeout=timeout)

    async def fill(self, value):
        await self._one().fill(value)

    async def input_value(self):
        return await self._one().input_value()

    async def is_visible(self):
        return await self._one().is_visible()

    async def evaluate(self, script):
        return await self._one().evaluate(script)

    async def set_input_files(self, path):
        await self._one().set_input_files(path)


class FakePage:
    """Page whose DOM is a selector -> elements map plus a list of form fields."""

    def __init__(self, controls=None, fields=None, goto_error=None):
        self.controls = {sel: list(els) for sel, els in (controls or {}).items()}
        self.fields = list(fields or [])
        self.goto_error = goto_error
        self.visited = []
        self.waits = []
        self.closed = False

    async def goto(self, url, wait_until=None, timeout=None):
        self.visited.append(url)
        if self.goto_error:
            raise self.goto_error

    async def wait_for_timeout(self, ms):
        self.waits.append(ms)

    def locator(self, selector):
        if selector == FIELD_SELECTOR:
            return FakeLocator(self.fields)
        return FakeLocator(self.controls.get(selector, []))

    async def close(self):
        self.closed = True


class FakeContext:
    def __init__(self, pages=None):
        self._pages = list(pages or [])
        self.opened = []
        self.closed = False

    async def new_page(self):
        page = self._pages.pop(0) if self._pages else FakePage()
        self.opened.append(page)
        return page

    async def close(self):
        self.closed = True


class FakeBrowser:
    def __init__(self, context):
        self.context = context
        self.context_kwargs = None
        self.closed = False

    async def new_context(self, **kwargs):
        self.context_kwargs = kwargs
        return self.context

    async def close(self):
        self.closed = True


class FakeChromium:
    def __init__(self, browser):
        self.browser = browser
        self.launches = 0
        self.launch_kwargs = None

    async def launch(self, **kwargs):
        self.launches += 1
        self.launch_kwargs = kwargs
        return self.browser


class FakePlaywright:
    """Pass an instance as ``playwright_factory`` to BrowserSession."""

    def __init__(self, pages=None):
        self.context = FakeContext(pages)
        self.browser = FakeBrowser(self.context)
        self.chromium = FakeChromium(self.browser)
        self.starts = 0
        self.stopped = False

    def __call__(self):
        return self

    async def start(self):
        self.starts += 1
        return self

    async def stop(self):
        self.stopped = True
