"""
In-page JavaScript evaluated through the browser session.

Each snippet is a function expression taking at most one argument, as
accepted by Playwright's page.evaluate().
"""

# Stealth init script: masks the most common automation fingerprints.
ANTI_DETECTION_INIT = """
    Object.defineProperty(navigator, 'webdriver', { get: () => undefined });
    Object.defineProperty(navigator, 'plugins', { get: () => [1, 2, 3, 4, 5] });
    Object.defineProperty(navigator, 'languages', { get: () => ['en-US', 'en'] });
    window.chrome = { runtime: {}, loadTimes: function() {}, csi: function() {}, app: {} };
    Object.defineProperty(screen, 'colorDepth', { get: () => 24 });
    Object.defineProperty(screen, 'pixelDepth', { get: () => 24 });
    delete window.playwright;
    delete window.__playwright;
"""

# Returns the text of the first short visible element mentioning a login error keyword.
LOGIN_ERROR_TEXT = """
(keywords) => {
    const candidates = document.querySelectorAll(
        '[role="alert"], .slds-form-element__help, .error, .errorMsg, .uiMessage, p, span, div'
    );
    for (const el of candidates) {
        if (el.offsetParent === null) continue;
        const text = (el.textContent || '').trim();
        if (!text || text.length > 300) continue;
        const lower = text.toLowerCase();
        if (keywords.some(k => lower.includes(k))) return text;
    }
    return null;
}
"""

# Clicks the first visible interactive element whose text/attributes mention a keyword.
# Searches the project filter component first, then the whole document.
CLICK_KEYWORD_ELEMENT = """
(keywords) => {
    const interactive = 'button, a, input[type="button"], input[type="submit"], [role="button"], [onclick], lightning-button';
    const scopes = [];
    const filterComponent = document.querySelector('[c-brokerportalsohbaprojectfilter_brokerportalsohbaprojectfilter]');
    if (filterComponent) scopes.push(filterComponent);
    scopes.push(document);

    for (const scope of scopes) {
        for (const el of scope.querySelectorAll(interactive)) {
            if (el.offsetParent === null) continue;
            const haystack = [
                el.textContent || el.value || '',
                el.getAttribute('aria-label') || '',
                typeof el.className === 'string' ? el.className : '',
                el.id || '',
                el.getAttribute('data-element') || ''
            ].join(' ').toLowerCase();
            if (keywords.some(k => haystack.includes(k))) {
                try {
                    el.click();
                    return (el.textContent || el.getAttribute('aria-label') || el.tagName).trim().slice(0, 80);
                } catch (e) {
                    continue;
                }
            }
        }
    }
    return null;
}
"""

# Counts dialogs (and promotional modal containers) still visible.
COUNT_VISIBLE_DIALOGS = """
() => {
    const dialogs = Array.from(document.querySelectorAll('[role="dialog"], .slds-modal'))
        .filter(el => el.offsetParent !== null);
    const promos = Array.from(document.querySelectorAll('[c-brokerportalhomepage_brokerportalhomepage]'))
        .filter(el => el.offsetParent !== null && el.querySelector('.slds-modal'));
    return dialogs.length + promos.length;
}
"""

# Phase A: the component tree has mounted.
LIGHTNING_MOUNTED = """
({ rootSelector, threshold }) => {
    if (document.querySelector(rootSelector)) return true;
    return document.querySelectorAll('[class*="slds-"], [data-aura-rendered-by]').length > threshold;
}
"""

# Phase B: the mounted UI is populated and interactive.
LIGHTNING_POPULATED = """
({ minInteractive, keywords }) => {
    const total = document.querySelectorAll('button').length
        + document.querySelectorAll('input').length
        + document.querySelectorAll('[onclick], [role="button"]').length;
    const text = document.body ? (document.body.textContent || '') : '';
    return total >= minInteractive && keywords.some(k => text.includes(k));
}
"""

LIGHTNING_STATUS = """
(rootSelector) => {
    const text = document.body ? (document.body.textContent || '') : '';
    return {
        hasComponent: !!document.querySelector(rootSelector),
        buttonCount: document.querySelectorAll('button').length,
        hasFilterText: text.includes('Filter'),
        hasPropertiesText: text.includes('Properties'),
        contentLength: text.length
    };
}
"""

# Text of a framework error overlay, or null when none is present.
ERROR_OVERLAY_TEXT = """
(selector) => {
    const el = document.querySelector(selector);
    return el ? (el.textContent || '').trim() : null;
}
"""

# Row count and first-row cell count of the first candidate tbody holding rows.
TABLE_STATUS = """
(tbodySelectors) => {
    for (const selector of tbodySelectors) {
        for (const tbody of document.querySelectorAll(selector)) {
            const rows = tbody.querySelectorAll('tr');
            if (rows.length > 0) {
                return { rowCount: rows.length, firstRowCells: rows[0].querySelectorAll('td').length };
            }
        }
    }
    return { rowCount: 0, firstRowCells: 0 };
}
"""

NAVIGATOR_INFO = """
() => ({
    userAgent: navigator.userAgent,
    viewport: { width: window.innerWidth, height: window.innerHeight }
})
"""

# True once the page has left the URL the login form was served from, or a
# logged-in marker is present.
POST_LOGIN_SIGNAL = """
({ loginUrl, markers }) => {
    if (window.location.href !== loginUrl) return true;
    return markers.some(selector => {
        try {
            return document.querySelector(selector) !== null;
        } catch (e) {
            return false;
        }
    });
}
"""
