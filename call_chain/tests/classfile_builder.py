"""Assembles minimal class files in memory, so the tests need no JDK."""
import struct
from pathlib import Path

ACC_PUBLIC = 0x0001
ACC_PRIVATE = 0x0002
ACC_STATIC = 0x0008
ACC_SUPER = 0x0020
ACC_INTERFACE = 0x0200
ACC_ABSTRACT = 0x0400
ACC_SYNTHETIC = 0x1000

ICONST_0 = 0x03
ALOAD_0 = 0x2A
POP = 0x57
RETURN = 0xB1
INVOKEVIRTUAL = 0xB6
INVOKESPECIAL = 0xB7
INVOKESTATIC = 0xB8
INVOKEINTERFACE = 0xB9
INVOKEDYNAMIC = 0xBA

REF_INVOKE_STATIC = 6
REF_INVOKE_VIRTUAL = 5

WEB = "Lorg/springframework/web/bind/annotation/"
DUBBO_SERVICE = "Lorg/apache/dubbo/config/annotation/DubboService;"


def u1(v: int) -> bytes:
    return struct.pack(">B", v)


def u2(v: int) -> bytes:
    return struct.pack(">H", v)


def u4(v: int) -> bytes:
    return struct.pack(">I", v)


class Enum:
    def __init__(self, type_desc: str, const: str):
        self.type_desc = type_desc
        self.const = const


class ClassFileBuilder:

    def __init__(self, name: str, super_name: str = "java/lang/Object", interfaces=(),
                 access: int = ACC_PUBLIC | ACC_SUPER):
        self.name = name
        self.super_name = super_name
        self.interfaces = list(interfaces)
        self.access = access
        self._pool: list[bytes] = []
        self._keys: dict = {}
        self._next = 1
        self._fields: list[bytes] = []
        self._methods: list[bytes] = []
        self._class_annotations: list[bytes] = []
        self._bootstrap: list[tuple[int, list[int]]] = []

    # -- Constant pool -------------------------------------------------------

    def _add(self, key, data: bytes, slots: int = 1) -> int:
        if key in self._keys:
            return self._keys[key]
        index = self._next
        self._pool.append(data)
        self._keys[key] = index
        self._next += slots
        return index

    def utf8(self, value: str = "", raw: bytes = None) -> int:
        enc = raw if raw is not None else value.encode("utf-8")
        return self._add(("utf8", enc), b"\x01" + u2(len(enc)) + enc)

    def integer(self, value: int) -> int:
        return self._add(("int", value), b"\x03" + struct.pack(">i", value))

    def long(self, value: int) -> int:
        return self._add(("long", value), b"\x05" + struct.pack(">q", value), slots=2)

    def string(self, value: str) -> int:
        return self._add(("string", value), b"\x08" + u2(self.utf8(value)))

    def class_ref(self, name: str) -> int:
        return self._add(("class", name), b"\x07" + u2(self.utf8(name)))

    def name_and_type(self, name: str, desc: str) -> int:
        return self._add(("nat", name, desc), b"\x0c" + u2(self.utf8(name)) + u2(self.utf8(desc)))

    def method_ref(self, owner: str, name: str, desc: str, interface: bool = False) -> int:
        tag = 11 if interface else 10
        return self._add(("mref", tag, owner, name, desc),
                         u1(tag) + u2(self.class_ref(owner)) + u2(self.name_and_type(name, desc)))

    def method_handle(self, kind: int, ref_index: int) -> int:
        return self._add(("mh", kind, ref_index), b"\x0f" + u1(kind) + u2(ref_index))

    def method_type(self, desc: str) -> int:
        return self._add(("mt", desc), b"\x10" + u2(self.utf8(desc)))

    def bootstrap_method(self, handle_index: int, args: list[int]) -> int:
        self._bootstrap.append((handle_index, args))
        return len(self._bootstrap) - 1

    def lambda_bootstrap(self, target_owner: str, target_name: str, target_desc: str) -> int:
        """LambdaMetafactory-style bootstrap whose implementation handle is the target."""
        metafactory = self.method_handle(REF_INVOKE_STATIC, self.method_ref(
            "java/lang/invoke/LambdaMetafactory", "metafactory",
            "(Ljava/lang/invoke/MethodHandles$Lookup;Ljava/lang/String;Ljava/lang/invoke/MethodType;"
            "Ljava/lang/invoke/MethodType;Ljava/lang/invoke/MethodHandle;Ljava/lang/invoke/MethodType;)"
            "Ljava/lang/invoke/CallSite;"))
        target = self.method_handle(REF_INVOKE_STATIC, self.method_ref(target_owner, target_name, target_desc))
        return self.bootstrap_method(metafactory, [self.method_type("()V"), target, self.method_type("()V")])

    # -- Instructions --------------------------------------------------------

    def invoke(self, opcode: int, owner: str, name: str, desc: str) -> bytes:
        if opcode == INVOKEINTERFACE:
            return u1(opcode) + u2(self.method_ref(owner, name, desc, interface=True)) + u1(1) + u1(0)
        return u1(opcode) + u2(self.method_ref(owner, name, desc))

    def invokedynamic(self, bsm_index: int, name: str = "run", desc: str = "()Ljava/lang/Runnable;") -> bytes:
        indy = self._add(("indy", bsm_index, name, desc),
                         b"\x12" + u2(bsm_index) + u2(self.name_and_type(name, desc)))
        return u1(INVOKEDYNAMIC) + u2(indy) + b"\x00\x00"

    # -- Annotations ---------------------------------------------------------

    def _element(self, value) -> bytes:
        if isinstance(value, str):
            return b"s" + u2(self.utf8(value))
        if isinstance(value, bool):
            return b"Z" + u2(self.integer(int(value)))
        if isinstance(value, int):
            return b"I" + u2(self.integer(value))
        if isinstance(value, Enum):
            return b"e" + u2(self.utf8(value.type_desc)) + u2(self.utf8(value.const))
        if isinstance(value, (list, tuple)):
            return b"[" + u2(len(value)) + b"".join(self._element(v) for v in value)
        raise TypeError(value)

    def annotation(self, type_desc: str, **elements) -> bytes:
        out = u2(self.utf8(type_desc)) + u2(len(elements))
        for key, value in elements.items():
            out += u2(self.utf8(key)) + self._element(value)
        return out

    def _attribute(self, name: str, body: bytes) -> bytes:
        return u2(self.utf8(name)) + u4(len(body)) + body

    def _annotations_attribute(self, annotations: list[bytes], visible: bool = True) -> bytes:
        name = "RuntimeVisibleAnnotations" if visible else "RuntimeInvisibleAnnotations"
        return self._attribute(name, u2(len(annotations)) + b"".join(annotations))

    def add_class_annotation(self, type_desc: str, **elements) -> "ClassFileBuilder":
        self._class_annotations.append(self.annotation(type_desc, **elements))
        return self

    # -- Members -------------------------------------------------------------

    def add_field(self, name: str, desc: str, access: int = ACC_PRIVATE) -> "ClassFileBuilder":
        signature = self._attribute("Signature", u2(self.utf8(desc)))
        self._fields.append(u2(access) + u2(self.utf8(name)) + u2(self.utf8(desc)) + u2(1) + signature)
        return self

    def add_method(self, name: str, desc: str, code: bytes = None, access: int = ACC_PUBLIC,
                   annotations=(), invisible_annotations=(), abstract: bool = False) -> "ClassFileBuilder":
        """code is the instruction bytes without the trailing return, which is appended."""
        attributes = []
        if abstract:
            access |= ACC_ABSTRACT
        else:
            body = (code or b"") + u1(RETURN)
            code_attr = u2(4) + u2(4) + u4(len(body)) + body + u2(0) + u2(0)
            attributes.append(self._attribute("Code", code_attr))
        if annotations:
            attributes.append(self._annotations_attribute(list(annotations)))
        if invisible_annotations:
            attributes.append(self._annotations_attribute(list(invisible_annotations), visible=False))
        self._methods.append(u2(access) + u2(self.utf8(name)) + u2(self.utf8(desc))
                             + u2(len(attributes)) + b"".join(attributes))
        return self

    # -- Output --------------------------------------------------------------

    def build(self) -> bytes:
        this_index = self.class_ref(self.name)
        super_index = self.class_ref(self.super_name) if self.super_name else 0
        interfaces = [self.class_ref(i) for i in self.interfaces]

        class_attributes = [self._attribute("SourceFile", u2(self.utf8(self.name.rsplit("/", 1)[-1] + ".java")))]
        if self._class_annotations:
            class_attributes.append(self._annotations_attribute(self._class_annotations))
        if self._bootstrap:
            body = u2(len(self._bootstrap)) + b"".join(
                u2(handle) + u2(len(args)) + b"".join(u2(a) for a in args) for handle, args in self._bootstrap)
            class_attributes.append(self._attribute("BootstrapMethods", body))

        # Every constant is registered by now
        out = u4(0xCAFEBABE) + u2(0) + u2(52) + u2(self._next) + b"".join(self._pool)
        out += u2(self.access) + u2(this_index) + u2(super_index)
        out += u2(len(interfaces)) + b"".join(u2(i) for i in interfaces)
        out += u2(len(self._fields)) + b"".join(self._fields)
        out += u2(len(self._methods)) + b"".join(self._methods)
        out += u2(len(class_attributes)) + b"".join(class_attributes)
        return out

    def write(self, root: Path) -> Path:
        path = Path(root) / (self.name + ".class")
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(self.build())
        return path


def interface(name: str, interfaces=()) -> ClassFileBuilder:
    return ClassFileBuilder(name, interfaces=interfaces, access=ACC_PUBLIC | ACC_INTERFACE | ACC_ABSTRACT)
