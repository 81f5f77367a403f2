"""
Class-file access on top of jawa.

jawa parses the container (constant pool, members, Code and BootstrapMethods
attributes) and disassembles method bodies. It keeps annotation attributes as
raw bytes, so their element values are decoded here.
"""
import io
import struct
from dataclasses import dataclass, field
from typing import Any, Iterator

from jawa.cf import ClassFile
from jawa.constants import UTF8, InterfaceMethodRef, InvokeDynamic, MethodHandle, MethodReference
from jawa.util.descriptor import JVMType, method_descriptor
from jawa.util.stream import BufferStreamReader

from call_chain.src.call_chain.errors import ClassFormatError

OBJECT = "java/lang/Object"

# Access flags
ACC_PUBLIC = 0x0001
ACC_STATIC = 0x0008
ACC_BRIDGE = 0x0040
ACC_INTERFACE = 0x0200
ACC_ABSTRACT = 0x0400
ACC_SYNTHETIC = 0x1000

INVOKE_MNEMONICS = frozenset({"invokevirtual", "invokespecial", "invokestatic", "invokeinterface"})
INVOKEDYNAMIC = "invokedynamic"

# Method handle kinds that point at methods (5..9); 1..4 are field accessors
METHOD_HANDLE_KINDS = range(5, 10)

METHOD_REFS = (MethodReference, InterfaceMethodRef)


def read_class_file(data: bytes) -> ClassFile:
    """Parses a whole class file. Raises ClassFormatError on malformed input."""
    try:
        return ClassFile(io.BytesIO(data))
    except (ValueError, TypeError, IndexError, struct.error) as e:
        raise ClassFormatError(f"unreadable class file: {e}") from e


def has_flag(member, flag: int) -> bool:
    """member is a jawa ClassFile or Method."""
    return bool(member.access_flags.value & flag)


def constant(cf: ClassFile, index: int, *types):
    try:
        value = cf.constants.get(index)
    except (IndexError, TypeError) as e:
        raise ClassFormatError(f"bad constant pool index {index}") from e
    if types and not isinstance(value, types):
        raise ClassFormatError(f"constant {index} is a {type(value).__name__}, "
                               f"expected {' or '.join(t.__name__ for t in types)}")
    return value


# --- Class header ------------------------------------------------------------

def this_name(cf: ClassFile) -> str:
    """Internal name, e.g. 'com/acme/UserService'."""
    return cf.this.name.value


def super_name(cf: ClassFile) -> str:
    """Internal name of the superclass, "" for java/lang/Object itself."""
    if this_name(cf) == OBJECT:
        return ""
    return cf.super_.name.value


def interface_names(cf: ClassFile) -> list[str]:
    return [c.name.value for c in cf.interfaces]


# --- Method bodies -----------------------------------------------------------

def member_ref(cf: ClassFile, index: int) -> tuple[str, str, str]:
    """(owner internal name, method name, descriptor) of a method ref."""
    ref = constant(cf, index, *METHOD_REFS)
    name_and_type = ref.name_and_type
    return ref.class_.name.value, name_and_type.name.value, name_and_type.descriptor.value


def call_sites(method) -> Iterator[tuple[str, int]]:
    """
    (mnemonic, constant index) of every invoke instruction of a method, in
    bytecode order. Methods without code yield nothing.
    """
    code = method.code
    if code is None:
        return
    for ins in code.disassemble():
        if ins.mnemonic in INVOKE_MNEMONICS or ins.mnemonic == INVOKEDYNAMIC:
            yield ins.mnemonic, ins.operands[0].value


def dynamic_targets(cf: ClassFile, indy_index: int) -> list[int]:
    """
    Method refs passed as bootstrap arguments of an invokedynamic site: the
    lambda body or the method reference target.
    """
    indy = constant(cf, indy_index, InvokeDynamic)
    # find_one, unlike cf.bootstrap_methods, does not create a missing table
    attribute = cf.attributes.find_one(name="BootstrapMethods")
    table = attribute.table if attribute is not None else []
    if indy.method_attr_index >= len(table):
        return []

    targets = []
    for arg in table[indy.method_attr_index].bootstrap_args:
        handle = constant(cf, arg)
        if not isinstance(handle, MethodHandle) or handle.reference_kind not in METHOD_HANDLE_KINDS:
            continue
        if isinstance(constant(cf, handle.reference_index), METHOD_REFS):
            targets.append(handle.reference_index)
    return targets


# --- Descriptors -------------------------------------------------------------

def type_name(jvm_type: JVMType) -> str:
    """JVMType('L', 1, 'java/lang/String') -> 'java.lang.String[]'"""
    name = jvm_type.name.replace("/", ".") if jvm_type.base_type == "L" else jvm_type.name
    return name + "[]" * jvm_type.dimensions


def parameter_types(descriptor: str) -> list[str]:
    """'(JLjava/util/Map;[B)V' -> ['long', 'java.util.Map', 'byte[]']"""
    if not descriptor.startswith("(") or ")" not in descriptor:
        raise ClassFormatError(f"bad method descriptor {descriptor!r}")
    try:
        args = method_descriptor(descriptor).args
    except KeyError as e:
        raise ClassFormatError(f"bad method descriptor {descriptor!r}") from e
    return [type_name(t) for t in args]


def parameter_descriptor(descriptor: str) -> str:
    """'(ILjava/lang/String;)V' -> '(ILjava/lang/String;)'"""
    return descriptor[:descriptor.find(")") + 1]


# --- Annotations -------------------------------------------------------------

@dataclass
class Annotation:
    type_descriptor: str  # e.g. "Lorg/springframework/web/bind/annotation/GetMapping;"
    elements: dict[str, Any] = field(default_factory=dict)


def _utf8(cf: ClassFile, index: int) -> str:
    return constant(cf, index, UTF8).value


def _read_element_value(reader: BufferStreamReader, cf: ClassFile) -> Any:
    tag = chr(reader.u1())
    if tag in "BCDFIJSZ":
        return constant(cf, reader.u2()).value
    if tag in "sc":
        return _utf8(cf, reader.u2())
    if tag == "e":
        return _utf8(cf, reader.u2()), _utf8(cf, reader.u2())
    if tag == "@":
        return _read_annotation(reader, cf)
    if tag == "[":
        return [_read_element_value(reader, cf) for _ in range(reader.u2())]
    raise ClassFormatError(f"unknown element value tag {tag!r}")


def _read_annotation(reader: BufferStreamReader, cf: ClassFile) -> Annotation:
    annotation = Annotation(_utf8(cf, reader.u2()))
    for _ in range(reader.u2()):
        name = _utf8(cf, reader.u2())
        annotation.elements[name] = _read_element_value(reader, cf)
    return annotation


def read_annotations(cf: ClassFile, attributes) -> list[Annotation]:
    """Visible and invisible runtime annotations from a class or method attribute table."""
    annotations = []
    for name in ("RuntimeVisibleAnnotations", "RuntimeInvisibleAnnotations"):
        attribute = attributes.find_one(name=name)
        if attribute is None:
            continue
        reader = BufferStreamReader(attribute.pack())
        try:
            annotations.extend(_read_annotation(reader, cf) for _ in range(reader.u2()))
        except struct.error as e:
            raise ClassFormatError(f"truncated {name} attribute") from e
    return annotations
