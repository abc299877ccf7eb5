import json

from campaign_tracker.core.config import settings

TRACK_EVENT_PATH = "/api/track-event"


def _js_string(value: str) -> str:
    # JSON string literal, with "<" escaped so "</script>" cannot close the tag
    return json.dumps(value).replace("<", "\\u003c").replace(">", "\\u003e")


def tracking_endpoint(base_url: str | None = None) -> str:
    return (base_url or settings.tracking_base_url).rstrip("/") + TRACK_EVENT_PATH


def render_tracking_snippet(campaign_id: str, campaign_name: str = "", base_url: str | None = None) -> str:
    """JavaScript to paste into a landing page for one campaign."""
    campaign_js = _js_string(campaign_id)
    endpoint_js = _js_string(tracking_endpoint(base_url))
    label = campaign_name.replace("*/", "* /").replace("<", "&lt;")

    return f"""/* Campaign Tracker: {label} */
(function() {{
  if (navigator.doNotTrack === '1' || window.doNotTrack === '1') {{
    console.log('[Campaign Tracker] Do Not Track enabled, tracking disabled');
    return;
  }}

  var campaignId = {campaign_js};
  var trackingUrl = {endpoint_js};

  function getVisitorId() {{
    var visitorId = localStorage.getItem('cc_visitor_id');
    if (!visitorId) {{
      visitorId = 'v_' + Date.now() + '_' + Math.random().toString(36).substr(2, 9);
      localStorage.setItem('cc_visitor_id', visitorId);
    }}
    return visitorId;
  }}

  var visitorId = getVisitorId();

  function trackEvent(eventType, extraData) {{
    var eventData = Object.assign({{
      campaign_id: campaignId,
      event_type: eventType,
      referrer: document.referrer,
      visitor_id: visitorId,
      page_path: window.location.pathname
    }}, extraData || {{}});

    fetch(trackingUrl, {{
      method: 'POST',
      headers: {{ 'Content-Type': 'application/json' }},
      body: JSON.stringify(eventData),
      keepalive: true
    }}).catch(function(err) {{ console.error('[Campaign Tracker] Tracking error:', err); }});
  }}

  trackEvent('pageview');

  document.addEventListener('click', function(e) {{
    var target = e.target.closest('button, a, [role="button"]');
    if (!target) return;
    var isConversion = target.hasAttribute('data-track-conversion') ||
                       target.closest('[data-track="conversion"]');
    trackEvent(isConversion ? 'conversion' : 'click', {{
      element_selector: target.tagName + (target.id ? '#' + target.id : ''),
      element_text: (target.textContent || '').trim().substring(0, 100)
    }});
  }});
}})();
"""
