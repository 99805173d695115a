"""
Firewall checks — is tcp:PORT let in, and are the GCP default rules intact?

A port counts as open when at least one enabled INGRESS rule allows it
(optionally restricted to one VPC network). The fix creates a single
allow rule for the port; if a rule of that name already exists it is
left alone and the re-probe decides.
"""

from __future__ import annotations

import logging

from easygce.core.engine.steps import CheckContext, ControlPlaneCall
from easygce.core.models.check import CapabilityCheck
from easygce.core.models.cloud import FirewallRule
from easygce.core.models.settings import Settings

logger = logging.getLogger(__name__)

CATEGORY = "firewall"


def covering_rules(
    rules: list[FirewallRule],
    port: int,
    network: str | None = None,
    protocol: str = "tcp",
) -> list[FirewallRule]:
    """Enabled INGRESS rules that allow ``protocol:port``."""
    return [
        rule
        for rule in rules
        if not rule.disabled
        and rule.direction.upper() == "INGRESS"
        and (network is None or rule.network == network)
        and rule.allows(port, protocol)
    ]


def _port_open(port: int, network: str | None):
    def probe(ctx: CheckContext) -> bool:
        found = covering_rules(ctx.control_plane.list_firewall_rules(), port, network)
        if found:
            logger.debug("tcp:%d covered by %s", port, ", ".join(r.name for r in found))
        return bool(found)

    return probe


def _ensure_rule(name: str, port: int, network: str, description: str):
    def fix(ctx: CheckContext) -> None:
        fw = ctx.settings.firewall
        if ctx.control_plane.describe_firewall_rule(name) is not None:
            logger.warning("Firewall rule %s already exists; not recreating it", name)
            return
        ctx.control_plane.create_firewall_rule(
            name=name,
            port=port,
            source_range=fw.source_range,
            network=network,
            priority=fw.priority,
            description=description,
        )

    return fix


def port_check(
    settings: Settings,
    port: int,
    rule_prefix: str,
    network: str | None = None,
    description: str = "",
) -> CapabilityCheck:
    """``firewall-tcp-PORT``: some enabled ingress rule allows the port."""
    rule_name = f"{rule_prefix}{port}"
    label = f"tcp:{port}" + (f" ({description})" if description else "")
    return CapabilityCheck(
        name=f"firewall-tcp-{port}",
        description=f"Ingress allowed on {label}",
        category=CATEGORY,
        probe=ControlPlaneCall(
            _port_open(port, network),
            label=f"an enabled INGRESS rule allows tcp:{port}",
        ),
        fix=ControlPlaneCall(
            _ensure_rule(
                rule_name,
                port,
                network or settings.firewall.network,
                f"EasyGCE: {description}" if description else "",
            ),
            label=f"create firewall rule {rule_name}",
        ),
    )


def _default_rule_enabled(name: str):
    def probe(ctx: CheckContext) -> bool:
        rule = ctx.control_plane.describe_firewall_rule(name)
        if rule is not None and rule.disabled:
            logger.warning("Rule %s exists but is DISABLED", name)
        return rule is not None and not rule.disabled

    return probe


def default_rule_check(name: str) -> CapabilityCheck:
    """``default-rule-NAME``: a GCP default rule exists and is enabled."""
    return CapabilityCheck(
        name=f"default-rule-{name}",
        description=f"Default rule {name} exists and is enabled",
        category=CATEGORY,
        probe=ControlPlaneCall(_default_rule_enabled(name), label=f"describe {name}"),
    )


def build_firewall_suite(settings: Settings) -> list[CapabilityCheck]:
    """Required ports on the configured network, then the default rules."""
    fw = settings.firewall
    checks = [
        port_check(
            settings,
            port,
            rule_prefix=fw.audit_rule_prefix,
            network=fw.network,
            description=description,
        )
        for port, description in sorted(fw.required_ports.items())
    ]
    checks.extend(default_rule_check(name) for name in fw.default_rules)
    return checks
