"""Static name tables for bug checks, exceptions, dump types and core modules."""
from __future__ import annotations

from typing import Any, Dict, Optional

# Windows stop codes. Codes above 0xFFFF listed here are genuine and pass
# validation even though they fall outside the plausibility band.
BUG_CHECK_NAMES: Dict[int, str] = {
    0x00000001: 'APC_INDEX_MISMATCH',
    0x00000002: 'DEVICE_QUEUE_NOT_BUSY',
    0x00000003: 'INVALID_AFFINITY_SET',
    0x00000004: 'INVALID_DATA_ACCESS_TRAP',
    0x00000005: 'INVALID_PROCESS_ATTACH_ATTEMPT',
    0x00000006: 'INVALID_PROCESS_DETACH_ATTEMPT',
    0x00000007: 'INVALID_SOFTWARE_INTERRUPT',
    0x00000008: 'IRQL_NOT_DISPATCH_LEVEL',
    0x00000009: 'IRQL_NOT_GREATER_OR_EQUAL',
    0x0000000A: 'IRQL_NOT_LESS_OR_EQUAL',
    0x0000000B: 'NO_EXCEPTION_HANDLING_SUPPORT',
    0x0000000C: 'MAXIMUM_WAIT_OBJECTS_EXCEEDED',
    0x0000000D: 'MUTEX_LEVEL_NUMBER_VIOLATION',
    0x0000000E: 'NO_USER_MODE_CONTEXT',
    0x0000000F: 'SPIN_LOCK_ALREADY_OWNED',
    0x00000010: 'SPIN_LOCK_NOT_OWNED',
    0x00000012: 'TRAP_CAUSE_UNKNOWN',
    0x00000013: 'EMPTY_THREAD_REAPER_LIST',
    0x00000018: 'REFERENCE_BY_POINTER',
    0x00000019: 'BAD_POOL_HEADER',
    0x0000001A: 'MEMORY_MANAGEMENT',
    0x0000001E: 'KMODE_EXCEPTION_NOT_HANDLED',
    0x00000020: 'KERNEL_APC_PENDING_DURING_EXIT',
    0x00000022: 'FILE_SYSTEM',
    0x00000023: 'FAT_FILE_SYSTEM',
    0x00000024: 'NTFS_FILE_SYSTEM',
    0x00000027: 'RDR_FILE_SYSTEM',
    0x0000002E: 'DATA_BUS_ERROR',
    0x00000031: 'PHASE0_INITIALIZATION_FAILED',
    0x00000032: 'PHASE1_INITIALIZATION_FAILED',
    0x00000034: 'CACHE_MANAGER',
    0x00000035: 'NO_MORE_IRP_STACK_LOCATIONS',
    0x00000039: 'SYSTEM_EXIT_OWNED_MUTEX',
    0x0000003B: 'SYSTEM_SERVICE_EXCEPTION',
    0x0000003D: 'INTERRUPT_EXCEPTION_NOT_HANDLED',
    0x0000003F: 'NO_MORE_SYSTEM_PTES',
    0x00000044: 'MULTIPLE_IRP_COMPLETE_REQUESTS',
    0x00000049: 'PAGE_FAULT_WITH_INTERRUPTS_OFF',
    0x0000004A: 'IRQL_GT_ZERO_AT_SYSTEM_SERVICE',
    0x0000004C: 'FATAL_UNHANDLED_HARD_ERROR',
    0x0000004D: 'NO_PAGES_AVAILABLE',
    0x0000004E: 'PFN_LIST_CORRUPT',
    0x0000004F: 'NDIS_INTERNAL_ERROR',
    0x00000050: 'PAGE_FAULT_IN_NONPAGED_AREA',
    0x00000051: 'REGISTRY_ERROR',
    0x00000053: 'NO_BOOT_DEVICE',
    0x00000057: 'XNS_INTERNAL_ERROR',
    0x0000005A: 'CRITICAL_SERVICE_FAILED',
    0x0000005C: 'HAL_INITIALIZATION_FAILED',
    0x0000005D: 'UNSUPPORTED_PROCESSOR',
    0x00000067: 'CONFIG_INITIALIZATION_FAILED',
    0x00000069: 'IO1_INITIALIZATION_FAILED',
    0x0000006B: 'PROCESS1_INITIALIZATION_FAILED',
    0x00000074: 'BAD_SYSTEM_CONFIG_INFO',
    0x00000076: 'PROCESS_HAS_LOCKED_PAGES',
    0x00000077: 'KERNEL_STACK_INPAGE_ERROR',
    0x00000079: 'MISMATCHED_HAL',
    0x0000007A: 'KERNEL_DATA_INPAGE_ERROR',
    0x0000007B: 'INACCESSIBLE_BOOT_DEVICE',
    0x0000007C: 'BUGCODE_NDIS_DRIVER',
    0x0000007E: 'SYSTEM_THREAD_EXCEPTION_NOT_HANDLED',
    0x0000007F: 'UNEXPECTED_KERNEL_MODE_TRAP',
    0x00000080: 'NMI_HARDWARE_FAILURE',
    0x0000008B: 'MBR_CHECKSUM_MISMATCH',
    0x0000008E: 'KERNEL_MODE_EXCEPTION_NOT_HANDLED',
    0x00000093: 'INVALID_KERNEL_HANDLE',
    0x00000096: 'INVALID_WORK_QUEUE_ITEM',
    0x0000009A: 'SYSTEM_LICENSE_VIOLATION',
    0x0000009C: 'MACHINE_CHECK_EXCEPTION',
    0x0000009E: 'USER_MODE_HEALTH_MONITOR',
    0x0000009F: 'DRIVER_POWER_STATE_FAILURE',
    0x000000A0: 'INTERNAL_POWER_ERROR',
    0x000000A1: 'PCI_BUS_DRIVER_INTERNAL',
    0x000000A2: 'MEMORY_IMAGE_CORRUPT',
    0x000000A5: 'ACPI_BIOS_ERROR',
    0x000000AC: 'HAL_MEMORY_ALLOCATION',
    0x000000B8: 'ATTEMPTED_SWITCH_FROM_DPC',
    0x000000BE: 'ATTEMPTED_WRITE_TO_READONLY_MEMORY',
    0x000000C1: 'SPECIAL_POOL_DETECTED_MEMORY_CORRUPTION',
    0x000000C2: 'BAD_POOL_CALLER',
    0x000000C4: 'DRIVER_VERIFIER_DETECTED_VIOLATION',
    0x000000C5: 'DRIVER_CORRUPTED_EXPOOL',
    0x000000C6: 'DRIVER_CAUGHT_MODIFYING_FREED_POOL',
    0x000000C7: 'TIMER_OR_DPC_INVALID',
    0x000000C9: 'DRIVER_VERIFIER_IOMANAGER_VIOLATION',
    0x000000CA: 'PNP_DETECTED_FATAL_ERROR',
    0x000000CB: 'DRIVER_LEFT_LOCKED_PAGES_IN_PROCESS',
    0x000000CC: 'PAGE_FAULT_IN_FREED_SPECIAL_POOL',
    0x000000CD: 'PAGE_FAULT_BEYOND_END_OF_ALLOCATION',
    0x000000CE: 'DRIVER_UNLOADED_WITHOUT_CANCELLING_PENDING_OPERATIONS',
    0x000000D0: 'DRIVER_CORRUPTED_MMPOOL',
    0x000000D1: 'DRIVER_IRQL_NOT_LESS_OR_EQUAL',
    0x000000D3: 'DRIVER_PORTION_MUST_BE_NONPAGED',
    0x000000D5: 'DRIVER_PAGE_FAULT_IN_FREED_SPECIAL_POOL',
    0x000000D6: 'DRIVER_PAGE_FAULT_BEYOND_END_OF_ALLOCATION',
    0x000000D8: 'DRIVER_USED_EXCESSIVE_PTES',
    0x000000DA: 'SYSTEM_PTE_MISUSE',
    0x000000DE: 'POOL_CORRUPTION_IN_FILE_AREA',
    0x000000E2: 'MANUALLY_INITIATED_CRASH',
    0x000000E3: 'RESOURCE_NOT_OWNED',
    0x000000E6: 'DRIVER_VERIFIER_DMA_VIOLATION',
    0x000000EA: 'THREAD_STUCK_IN_DEVICE_DRIVER',
    0x000000ED: 'UNMOUNTABLE_BOOT_VOLUME',
    0x000000EF: 'CRITICAL_PROCESS_DIED',
    0x000000F4: 'CRITICAL_OBJECT_TERMINATION',
    0x000000F5: 'FLTMGR_FILE_SYSTEM',
    0x000000F7: 'DRIVER_OVERRAN_STACK_BUFFER',
    0x000000FC: 'ATTEMPTED_EXECUTE_OF_NOEXECUTE_MEMORY',
    0x000000FE: 'BUGCODE_USB_DRIVER',
    0x00000101: 'CLOCK_WATCHDOG_TIMEOUT',
    0x00000102: 'DPC_WATCHDOG_TIMEOUT',
    0x00000109: 'CRITICAL_STRUCTURE_CORRUPTION',
    0x0000010D: 'WDF_VIOLATION',
    0x0000010E: 'VIDEO_MEMORY_MANAGEMENT_INTERNAL',
    0x00000113: 'VIDEO_DXGKRNL_FATAL_ERROR',
    0x00000116: 'VIDEO_TDR_FAILURE',
    0x00000117: 'VIDEO_TDR_TIMEOUT_DETECTED',
    0x00000119: 'VIDEO_SCHEDULER_INTERNAL_ERROR',
    0x0000011B: 'DRIVER_RETURNED_HOLDING_CANCEL_LOCK',
    0x00000120: 'BITLOCKER_FATAL_ERROR',
    0x00000122: 'WHEA_INTERNAL_ERROR',
    0x00000124: 'WHEA_UNCORRECTABLE_ERROR',
    0x00000127: 'PAGE_NOT_ZERO',
    0x0000012B: 'FAULTY_HARDWARE_CORRUPTED_PAGE',
    0x00000133: 'DPC_WATCHDOG_VIOLATION',
    0x00000139: 'KERNEL_SECURITY_CHECK_FAILURE',
    0x0000013A: 'KERNEL_MODE_HEAP_CORRUPTION',
    0x00000141: 'VIDEO_ENGINE_TIMEOUT_DETECTED',
    0x00000144: 'BUGCODE_USB3_DRIVER',
    0x00000149: 'REFS_FILE_SYSTEM',
    0x00000154: 'UNEXPECTED_STORE_EXCEPTION',
    0x00000155: 'OS_DATA_TAMPERING',
    0x00000157: 'KERNEL_THREAD_PRIORITY_FLOOR_VIOLATION',
    0x0000015F: 'CONNECTED_STANDBY_WATCHDOG_TIMEOUT_LIVEDUMP',
    0x00000160: 'WIN32K_ATOMIC_CHECK_FAILURE',
    0x00000161: 'LIVE_SYSTEM_DUMP',
    0x00000162: 'KERNEL_AUTO_BOOST_INVALID_LOCK_RELEASE',
    0x00000164: 'WIN32K_CRITICAL_FAILURE',
    0x00000189: 'BAD_OBJECT_HEADER',
    0x0000018B: 'SECURE_KERNEL_ERROR',
    0x0000018C: 'HYPERGUARD_VIOLATION',
    0x00000191: 'PF_DETECTED_CORRUPTION',
    0x00000192: 'KERNEL_AUTO_BOOST_LOCK_ACQUISITION_WITH_RAISED_IRQL',
    0x00000193: 'VIDEO_DXGKRNL_LIVEDUMP',
    0x00000195: 'SMB_SERVER_LIVEDUMP',
    0x00000196: 'LOADER_ROLLBACK_DETECTED',
    0x00000197: 'WIN32K_SECURITY_FAILURE',
    0x000001AA: 'EXCEPTION_ON_INVALID_STACK',
    0x000001AB: 'UNWIND_ON_INVALID_STACK',
    0x000001C4: 'DRIVER_VERIFIER_DETECTED_VIOLATION_LIVEDUMP',
    0x000001C5: 'IO_THREADPOOL_DEADLOCK_LIVEDUMP',
    0x000001C6: 'FAST_ERESOURCE_PRECONDITION_VIOLATION',
    0x000001C7: 'STORE_DATA_STRUCTURE_CORRUPTION',
    0x000001C8: 'MANUALLY_INITIATED_POWER_BUTTON_HOLD',
    0x000001CA: 'HYPERVISOR_WATCHDOG_TIMEOUT',
    0x000001CD: 'INVALID_CALLBACK_STACK_ADDRESS',
    0x000001CE: 'INVALID_KERNEL_STACK_ADDRESS',
    0x000001CF: 'HARDWARE_WATCHDOG_TIMEOUT',
    0x000001D5: 'DRIVER_PNP_WATCHDOG',
    0x000001DB: 'IPI_WATCHDOG_TIMEOUT',
    0x000001DF: 'PROCESSOR_START_TIMEOUT',
    0x00000BFE: 'BC_BLUETOOTH_VERIFIER_FAULT',
    0x00000BFF: 'BC_BTHMINI_VERIFIER_FAULT',
    0x00008866: 'KERNEL_MODE_HEAP_CORRUPTION',
    0x0000F000: 'POWER_KERNEL_WATCHDOG',
    0x00020001: 'HYPERVISOR_ERROR',
    0x1000007E: 'SYSTEM_THREAD_EXCEPTION_NOT_HANDLED_M',
    0x1000007F: 'UNEXPECTED_KERNEL_MODE_TRAP_M',
    0x1000008E: 'KERNEL_MODE_EXCEPTION_NOT_HANDLED_M',
    0x100000EA: 'THREAD_STUCK_IN_DEVICE_DRIVER_M',
    0x10000050: 'PAGE_FAULT_IN_NONPAGED_AREA_M',
    0x4000008A: 'THREAD_TERMINATE_HELD_MUTEX',
    0xC000021A: 'STATUS_SYSTEM_PROCESS_TERMINATED',
    0xC0000221: 'STATUS_IMAGE_CHECKSUM_MISMATCH',
    0xDEADDEAD: 'MANUALLY_INITIATED_CRASH1',
}

EXCEPTION_NAMES: Dict[int, str] = {
    0xC0000005: 'ACCESS_VIOLATION',
    0xC0000374: 'HEAP_CORRUPTION',
    0xC00000FD: 'STACK_OVERFLOW',
    0xE06D7363: 'CPP_EXCEPTION',
    0xC0000409: 'STACK_BUFFER_OVERRUN',
    0xC000008E: 'FLOAT_DIVIDE_BY_ZERO',
    0xC0000094: 'INTEGER_DIVIDE_BY_ZERO',
    0xC000001D: 'ILLEGAL_INSTRUCTION',
    0xC0000096: 'PRIVILEGED_INSTRUCTION',
    0xC0000006: 'IN_PAGE_ERROR',
    0xC0000025: 'NONCONTINUABLE_EXCEPTION',
    0xC0000026: 'INVALID_DISPOSITION',
    0xC000008C: 'ARRAY_BOUNDS_EXCEEDED',
    0x80000001: 'GUARD_PAGE_VIOLATION',
    0x80000002: 'DATATYPE_MISALIGNMENT',
    0x80000003: 'BREAKPOINT',
    0x80000004: 'SINGLE_STEP',
}

# DUMP_HEADER DumpType values.
DUMP_TYPE_NAMES: Dict[int, str] = {
    1: 'FULL',
    2: 'SUMMARY',
    3: 'HEADER',
    4: 'TRIAGE',
    5: 'BITMAP_FULL',
    6: 'BITMAP_KERNEL',
    7: 'AUTOMATIC',
}

DUMP_TYPE_TRIAGE = 4

# Kernel breakpoint exception used by kernel minidumps to carry a bug check.
BUGCHECK_EXCEPTION_CODE = 0x80000003

SYSTEM_MODULES = frozenset({
    'ntoskrnl.exe', 'ntkrnlmp.exe', 'ntkrnlpa.exe', 'hal.dll',
    'win32k.sys', 'win32kbase.sys', 'win32kfull.sys', 'tcpip.sys',
    'ndis.sys', 'fltmgr.sys', 'ntfs.sys', 'volsnap.sys', 'storport.sys',
    'ataport.sys', 'classpnp.sys', 'disk.sys', 'partmgr.sys', 'volmgr.sys',
    'ci.dll', 'clfs.sys', 'ksecdd.sys', 'cng.sys', 'acpi.sys', 'pci.sys',
    'dxgkrnl.sys', 'dxgmms2.sys', 'ntdll.dll', 'kernel32.dll',
    'kernelbase.dll',
})

BUG_CHECK_GUIDANCE: Dict[int, Dict[str, Any]] = {
    0x0A: {
        'explanation': 'Kernel-mode code touched invalid or pageable memory at elevated IRQL.',
        'causes': (
            'Driver attempted to access pageable memory at elevated IRQL',
            'Corrupted system service or driver',
            'Faulty hardware (RAM, CPU cache)',
        ),
        'solutions': (
            'Run Windows Memory Diagnostic',
            'Update storage and network drivers',
            'Run Driver Verifier on suspected drivers',
        ),
    },
    0x1E: {
        'explanation': 'A kernel-mode program generated an exception the error handler did not catch.',
        'causes': (
            'Unhandled exception in kernel driver',
            'Memory access violation in kernel mode',
        ),
        'solutions': (
            'Identify the faulting driver from the stack trace',
            'Update or remove the problematic driver',
            'Run sfc /scannow to check system files',
        ),
    },
    0x3B: {
        'explanation': 'An exception happened while executing a routine that transitions from user to kernel mode.',
        'causes': (
            'Graphics or antivirus driver fault',
            'Corrupted system files',
        ),
        'solutions': (
            'Update display drivers',
            'Temporarily disable third-party security software',
        ),
    },
    0x50: {
        'explanation': 'Invalid system memory was referenced.',
        'causes': (
            'Driver referenced invalid system memory',
            'Corrupted page table entries',
            'Faulty RAM module',
        ),
        'solutions': (
            'Test RAM with MemTest86+',
            'Check disk for errors with chkdsk /f',
            'Update storage controller drivers',
        ),
    },
    0x7E: {
        'explanation': 'A system thread generated an exception the error handler did not catch.',
        'causes': (
            'Exception in system thread',
            'Incompatible driver',
        ),
        'solutions': (
            'Identify the driver named in parameter 2 and update it',
        ),
    },
    0xD1: {
        'explanation': 'A driver accessed pageable memory at DISPATCH_LEVEL or above.',
        'causes': (
            'Driver programming error',
            'Race condition in driver code',
        ),
        'solutions': (
            'Update the driver owning the faulting address',
            'Run Driver Verifier',
        ),
    },
    0xEF: {
        'explanation': 'A critical system process died.',
        'causes': (
            'Corrupted system files',
            'Failing storage device',
        ),
        'solutions': (
            'Run sfc /scannow and DISM /RestoreHealth',
            'Check the system drive for errors',
        ),
    },
    0x124: {
        'explanation': 'The CPU reported an uncorrectable hardware error.',
        'causes': (
            'Overheating or power delivery issue',
            'CPU/RAM instability',
            'Overclocking instability',
        ),
        'solutions': (
            'Check CPU temperatures',
            'Reset BIOS to defaults',
            'Check power supply stability',
        ),
    },
    0x133: {
        'explanation': 'A DPC routine or the system at DISPATCH_LEVEL ran too long.',
        'causes': (
            'Storage driver timeout',
            'Firmware issues with SSD/NVMe',
        ),
        'solutions': (
            'Update storage controller drivers',
            'Update SSD/NVMe firmware',
        ),
    },
    0x139: {
        'explanation': 'The kernel detected corruption of a critical data structure.',
        'causes': (
            'Driver corrupted a LIST_ENTRY or stack cookie',
            'Memory corruption',
        ),
        'solutions': (
            'Update recently installed drivers',
            'Run Windows Memory Diagnostic',
        ),
    },
}


def bug_check_name(code: int) -> str:
    return BUG_CHECK_NAMES.get(code, f"UNKNOWN_0x{code:08X}")


def exception_name(code: int) -> str:
    return EXCEPTION_NAMES.get(code, 'UNKNOWN_EXCEPTION')


def dump_type_name(value: int) -> str:
    return DUMP_TYPE_NAMES.get(value, f"UNKNOWN_{value}")


def bug_check_guidance(code: int) -> Optional[Dict[str, Any]]:
    return BUG_CHECK_GUIDANCE.get(code)
