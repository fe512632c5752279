"""Tests for the anti-hallucination filter."""
from dump_decoder.codes import bug_check_name
from dump_decoder.denylist import DEFAULT_DENYLIST, Denylist
from dump_decoder.errors import InvalidatedField
from dump_decoder.models import BugCheckRecord, ModuleName, ModuleRange, Verdict
from dump_decoder.validation import (
    check_module_ranges,
    check_numeric_fields,
    check_parameters,
    validate,
    validate_bug_check,
    validate_modules,
)


def _record(code, params=(0, 0, 0, 0)):
    return BugCheckRecord(code=code, name=bug_check_name(code), parameters=params)


def test_sentinel_code_is_rejected():
    """0x65F4 is marked invalid and never confirmed."""
    checked = validate_bug_check(_record(0x65F4))
    assert checked.verdict is Verdict.REJECTED
    assert not checked.confirmed
    assert checked.code == 0x65F4
    assert 'fabricated' in checked.reason


def test_known_codes_are_verified():
    for code in (0x0A, 0x1E, 0xD1, 0x1000007E, 0xC000021A):
        checked = validate_bug_check(_record(code))
        assert checked.verdict is Verdict.VERIFIED, hex(code)
        assert checked.confirmed


def test_out_of_band_code_is_implausible():
    checked = validate_bug_check(_record(0x12345678))
    assert checked.verdict is Verdict.IMPLAUSIBLE
    assert '0x12345678' in checked.reason
    assert validate_bug_check(_record(0)).verdict is Verdict.IMPLAUSIBLE


def test_unnamed_code_inside_band_is_verified():
    checked = validate_bug_check(_record(0x2345))
    assert checked.verdict is Verdict.VERIFIED
    assert checked.name == 'UNKNOWN_0x00002345'


def test_placeholder_code_is_rejected():
    """0x1234 sits inside the plausible band but is a known placeholder, not a stop code."""
    checked = validate_bug_check(_record(0x1234, params=(1, 2, 3, 4)))
    assert checked.verdict is Verdict.REJECTED
    assert not checked.confirmed
    assert checked.parameters == (1, 2, 3, 4)
    assert DEFAULT_DENYLIST.rejects_code(0x1234)


def test_missing_record_stays_missing():
    assert validate_bug_check(None) is None


def test_extended_denylist():
    """Additional fabricated values can be added without code changes."""
    denylist = DEFAULT_DENYLIST.extend(codes=[0xBEEF], module_names=['Bogus.sys'])
    assert validate_bug_check(_record(0xBEEF), denylist).verdict is Verdict.REJECTED
    assert validate_bug_check(_record(0x65F4), denylist).verdict is Verdict.REJECTED
    assert denylist.rejects_module('BOGUS.SYS')
    assert not DEFAULT_DENYLIST.rejects_module('bogus.sys')


def test_validate_modules_splits_rejected():
    modules = [ModuleName('ntfs.sys'), ModuleName('WXR.sys'), ModuleName('tcpip.sys')]
    accepted, rejected = validate_modules(modules)
    assert [m.name for m in accepted] == ['ntfs.sys', 'tcpip.sys']
    assert rejected[0].value == 'WXR.sys'
    assert rejected[0].field == 'module'


def test_invalidated_field_record():
    err = InvalidatedField('module', 'fake.sys', 'known fabricated module name')
    record = err.as_record()
    assert (record.field, record.value, record.reason) == ('module', 'fake.sys', 'known fabricated module name')
    assert 'fake.sys' in str(err)


def test_numeric_field_checks():
    issues = check_numeric_fields({
        'processor_count': 0,
        'architecture': None,
        'architecture_raw': 0x1234,
        'windows_version': '0.5',
    })
    assert len(issues) == 3
    assert check_numeric_fields({'processor_count': 8, 'architecture': 'x64',
                                 'architecture_raw': 0x8664, 'windows_version': '10.0'}) == []


def test_parameter_checks():
    irql = validate_bug_check(_record(0x0A, (0x10, 0xFF, 0x0, 0xFFFFF80312345678)))
    assert any('IRQL' in issue for issue in check_parameters(irql))

    good = validate_bug_check(_record(0xD1, (0x28, 0x2, 0x0, 0xFFFFF80312345678)))
    assert check_parameters(good) == []

    filler = validate_bug_check(_record(0x133, (0xFFFFFFFFFFFFFFFF,) * 4))
    issues = check_parameters(filler)
    assert any('all-ones' in issue for issue in issues)

    rejected = validate_bug_check(_record(0x65F4, (0xFF, 0xFF, 0xFF, 0xFF)))
    assert check_parameters(rejected) == []


def test_overlapping_module_ranges():
    ranges = [
        ModuleRange('a.dll', 0x1000, 0x2000),
        ModuleRange('b.dll', 0x2000, 0x1000),
        ModuleRange('c.dll', 0x5000, 0x1000),
    ]
    issues = check_module_ranges(ranges)
    assert len(issues) == 1
    assert 'a.dll' in issues[0] and 'b.dll' in issues[0]


def test_validate_combines_checks():
    result = validate(
        _record(0x65F4),
        [ModuleName('dummy.sys'), ModuleName('storport.sys')],
        {'processor_count': 4, 'architecture': 'x64', 'architecture_raw': 0x8664},
        denylist=Denylist(codes=frozenset({0x65F4}), module_names=frozenset({'dummy.sys'})),
    )
    assert result.bug_check.verdict is Verdict.REJECTED
    assert [m.name for m in result.modules] == ['storport.sys']
    assert [r.value for r in result.rejected_modules] == ['dummy.sys']
    assert result.issues == ()
