"""Read-only extraction routines evaluated inside the page context."""

from __future__ import annotations

PRIMARY_BODY_LIMIT = 5000
FALLBACK_BODY_LIMIT = 2000
MINIMAL_BODY_PLACEHOLDER = "Content extraction failed"

PRIMARY_EXTRACTION_SCRIPT = """
(bodyLimit) => {
    const loc = window.location;
    const title = document.title || '';
    const bodyText = document.body ? document.body.innerText.substring(0, bodyLimit) : '';
    const meta = document.querySelector('meta[name="description"]');
    const language = document.documentElement.lang ||
        (document.querySelector('meta[http-equiv="content-language"]') || {}).content || '';

    const externalLinks = Array.from(document.querySelectorAll('a[href]')).filter(a => {
        try {
            return new URL(a.href).hostname !== loc.hostname;
        } catch (e) {
            return false;
        }
    }).length;

    let hasLoginForm = false;
    for (const form of document.querySelectorAll('form')) {
        const password = form.querySelector('input[type="password"]');
        const email = form.querySelector('input[type="email"]');
        const username = form.querySelector(
            'input[name*="user"], input[name*="login"], input[name*="email"]'
        );
        if (password && (email || username)) {
            hasLoginForm = true;
            break;
        }
    }

    const metaRefresh = document.querySelector('meta[http-equiv="refresh"]');
    const jsRedirects = document.body
        ? (document.body.innerHTML.match(/(window\\.location|location\\.href|location\\.replace)/gi) || []).length
        : 0;

    const forms = Array.from(document.querySelectorAll('form')).map(form => ({
        action: form.action || '',
        method: form.method || 'get',
        inputs: Array.from(form.querySelectorAll('input')).map(input => ({
            type: input.type || '',
            name: input.name || '',
            required: !!input.required,
        })),
    }));

    return {
        title,
        description: meta ? (meta.content || '') : '',
        bodyText,
        language,
        signals: {
            iframes: document.querySelectorAll('iframe').length,
            externalLinks,
            sensitiveInputs: document.querySelectorAll('input[type="password"], input[type="email"]').length,
            https: loc.protocol === 'https:',
            hasLoginForm,
            popupTriggers: document.querySelectorAll('[onclick*="popup"], [onclick*="window.open"]').length,
            redirects: {
                metaRefresh: !!metaRefresh,
                jsRedirects,
                refreshContent: metaRefresh ? (metaRefresh.content || null) : null,
            },
            hiddenElements: document.querySelectorAll(
                '[style*="display:none"], [style*="display: none"], [style*="visibility:hidden"], [style*="visibility: hidden"]'
            ).length,
        },
        forms,
        url: {
            protocol: loc.protocol,
            hostname: loc.hostname,
            path: loc.pathname,
            query: loc.search,
            port: loc.port,
            fullUrl: loc.href,
        },
    };
}
"""

FALLBACK_EXTRACTION_SCRIPT = """
(bodyLimit) => {
    const loc = window.location;
    const meta = document.querySelector('meta[name="description"]');
    return {
        title: document.title || '',
        description: meta ? (meta.content || '') : '',
        bodyText: document.body ? document.body.innerText.substring(0, bodyLimit) : '',
        signals: {
            iframes: document.querySelectorAll('iframe').length,
            externalLinks: 0,
            sensitiveInputs: document.querySelectorAll('input[type="password"], input[type="email"]').length,
            https: loc.protocol === 'https:',
            hasLoginForm: document.querySelectorAll('form').length > 0,
        },
        url: {
            protocol: loc.protocol,
            hostname: loc.hostname,
            path: loc.pathname,
            query: loc.search,
            port: loc.port,
            fullUrl: loc.href,
        },
    };
}
"""
