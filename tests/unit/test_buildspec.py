from prowler_audit.buildspec import render_buildspec


def test_buildspec_pins_prowler_version():
    buildspec = render_buildspec(prowler_version='4.0.0', python_version='3.11')

    assert buildspec.startswith('version: 0.2')
    assert 'pip3 install prowler==4.0.0' in buildspec
    assert 'python: 3.11' in buildspec


def test_buildspec_tolerates_failed_checks():
    buildspec = render_buildspec()

    assert 'prowler $PROWLER_OPTIONS --ignore-exit-code-3' in buildspec
    assert '{{' not in buildspec


def test_buildspec_echoes_prowler_command():
    buildspec = render_buildspec()

    assert 'echo "Running Prowler as prowler $PROWLER_OPTIONS"' in buildspec
