"""Starter .depsafe.toml and suppression file templates."""

DEFAULT_TOML = """\
# depsafe configuration
version = "1.0"

[suppression]
files = ["suppressions.xml"]   # applied in order, after the packaged base rules
include_base = true
fail_on_unused = false         # exit 1 when a rule never matched anything

[output]
format = "terminal"            # terminal | json
show_summary = true
show_suppressed = false

[logging]
level = "warning"              # debug | info | warning | error
"""

DEFAULT_SUPPRESSIONS = """\
<?xml version="1.0" encoding="UTF-8"?>
<suppressions xmlns="https://jeremylong.github.io/DependencyCheck/dependency-suppression.1.3.xsd">
    <!--
    <suppress until="2030-01-01Z">
        <notes>Why this is a false positive.</notes>
        <packageUrl regex="true">^pkg:maven/org\\.example/library@.*$</packageUrl>
        <cpe>cpe:/a:example:library</cpe>
    </suppress>
    -->
</suppressions>
"""
