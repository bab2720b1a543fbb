"""Restock monitor package.

Polls product documents of one storefront, detects per-SKU restocks and
fans RestockEvents out to subscriber sinks.

Key modules:
    dispatcher  -- Monitor: task registry, poller lifecycle, event fan-out
    poller      -- Poller: per-target polling loop and status handling
    stock       -- SKU diff detector and RestockEvent assembly
    session     -- BuildIdCache: throttled, serialized build id refresh
    proxy       -- Proxy parsing, batch loader and round-robin ProxyPool
    transport   -- CurlTransport: impersonating HTTP client per poller
    fanout      -- Outbox: ordered delivery with per-event timeout
    throttle    -- Throttle: start-to-start request spacing
    targets     -- product URL validation
    notifier    -- NoopNotifier and DiscordNotifier
    backoff     -- Backoff for webhook retries
    config      -- MonitorConfig and SiteConfig
    models      -- RestockEvent, SizeInfo, SkuState, Task, Target
    errors      -- exception hierarchy
"""
