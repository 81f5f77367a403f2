import logging
from dataclasses import dataclass
from typing import Optional

from jawa.cf import ClassFile

from call_chain.src.call_chain.class_reader import (
    ACC_ABSTRACT,
    ACC_BRIDGE,
    ACC_PUBLIC,
    ACC_STATIC,
    ACC_SYNTHETIC,
    INVOKE_MNEMONICS,
    INVOKEDYNAMIC,
    OBJECT,
    Annotation,
    call_sites,
    dynamic_targets,
    has_flag,
    interface_names,
    member_ref,
    parameter_descriptor,
    parameter_types,
    read_annotations,
    read_class_file,
    super_name,
    this_name,
)
from call_chain.src.call_chain.inputs.directory_scanning import read_bytes
from call_chain.src.call_chain.inputs.path_matching import is_excluded
from call_chain.src.call_chain.models.chain_models import ClassDescriptor, EntryKind, MethodRecord

logger = logging.getLogger(__name__)

_WEB = "Lorg/springframework/web/bind/annotation/"
REQUEST_MAPPING = _WEB + "RequestMapping;"
WEB_MAPPING_ANNOTATIONS = frozenset({
    REQUEST_MAPPING,
    _WEB + "GetMapping;",
    _WEB + "PostMapping;",
    _WEB + "PutMapping;",
    _WEB + "DeleteMapping;",
    _WEB + "PatchMapping;",
})

RPC_SERVICE_ANNOTATIONS = frozenset({
    "Lorg/apache/dubbo/config/annotation/DubboService;",
    "Lorg/apache/dubbo/config/annotation/Service;",
    "Lcom/alibaba/dubbo/config/annotation/Service;",
    "Lnet/devh/boot/grpc/server/service/GrpcService;",
})

CONSTRUCTOR = "<init>"
STATIC_INIT = "<clinit>"


@dataclass(frozen=True)
class ScanContext:
    """Read-only state shared by every artifact of one root."""
    base_package: str = ""  # internal form, e.g. "com/acme"; empty keeps every call

    def keeps_call_to(self, owner: str) -> bool:
        if owner.startswith("["):  # array pseudo-classes, e.g. clone() on an array
            return False
        if not self.base_package:
            return True
        return owner == self.base_package or owner.startswith(self.base_package + "/")


def dotted(internal_name: str) -> str:
    return internal_name.replace("/", ".")


def method_signature(owner: str, name: str, descriptor: str) -> str:
    """'com.acme.A', 'run', '(I)V' -> 'com.acme.A#run(I)'"""
    return f"{owner}#{name}{parameter_descriptor(descriptor)}"


def make_stub(owner_internal: str, name: str, descriptor: str) -> MethodRecord:
    """A call-site record: only owner, name and descriptor are known."""
    owner = dotted(owner_internal)
    return MethodRecord(
        signature=method_signature(owner, name, descriptor),
        name=name,
        descriptor=descriptor,
        parameters=parameter_types(descriptor),
        owner=ClassDescriptor(name=owner),
    )


def mapping_path(annotation: Annotation) -> str:
    """First path of a mapping annotation's value/path element."""
    for key in ("value", "path"):
        value = annotation.elements.get(key)
        if isinstance(value, list):
            value = next((v for v in value if isinstance(v, str)), None)
        if isinstance(value, str):
            return value
    return ""


def _find(annotations: list[Annotation], types) -> Optional[Annotation]:
    return next((a for a in annotations if a.type_descriptor in types), None)


class MethodExtractor:
    """
    Turns one parsed class file into MethodRecords: class metadata, entry-point
    classification and the call sites found in each method body.
    """

    def __init__(self, class_file: ClassFile, context: ScanContext):
        self.class_file = class_file
        self.context = context

    def extract(self) -> list[MethodRecord]:
        cf = self.class_file
        class_annotations = read_annotations(cf, cf.attributes)
        owner = self._describe_class(class_annotations)
        class_is_rpc = _find(class_annotations, RPC_SERVICE_ANNOTATIONS) is not None

        records = []
        for method in cf.methods:
            name = method.name.value
            descriptor = method.descriptor.value
            annotations = read_annotations(cf, method.attributes)
            entry_kind, path = self._classify(method, name, annotations, class_is_rpc)
            records.append(MethodRecord(
                signature=method_signature(owner.name, name, descriptor),
                name=name,
                descriptor=descriptor,
                parameters=parameter_types(descriptor),
                owner=owner,
                is_abstract=has_flag(method, ACC_ABSTRACT),
                entry_kind=entry_kind,
                mapping_path=path,
                callees=self._collect_callees(method),
            ))
        return records

    # -- Class & method metadata ---------------------------------------------

    def _describe_class(self, class_annotations: list[Annotation]) -> ClassDescriptor:
        cf = self.class_file
        parent = super_name(cf)
        request_mapping = _find(class_annotations, {REQUEST_MAPPING})
        return ClassDescriptor(
            name=dotted(this_name(cf)),
            super_name="" if parent in ("", OBJECT) else dotted(parent),
            interfaces=tuple(dotted(i) for i in interface_names(cf)),
            request_path=mapping_path(request_mapping) if request_mapping else "",
        )

    def _classify(self, method, name: str, annotations: list[Annotation],
                  class_is_rpc: bool) -> tuple[EntryKind, str]:
        """(entry kind, method-level mapping path)"""
        if has_flag(method, ACC_ABSTRACT):
            return EntryKind.NONE, ""

        web_mapping = _find(annotations, WEB_MAPPING_ANNOTATIONS)
        if web_mapping is not None:
            return EntryKind.HTTP, mapping_path(web_mapping)

        if class_is_rpc or _find(annotations, RPC_SERVICE_ANNOTATIONS) is not None:
            exposed = (
                has_flag(method, ACC_PUBLIC)
                and not has_flag(method, ACC_STATIC | ACC_SYNTHETIC | ACC_BRIDGE)
                and name not in (CONSTRUCTOR, STATIC_INIT)
            )
            if exposed:
                return EntryKind.RPC, ""
        return EntryKind.NONE, ""

    # -- Call sites ----------------------------------------------------------

    def _collect_callees(self, method) -> list[MethodRecord]:
        """One stub per call instruction, in bytecode order."""
        callees = []
        for mnemonic, index in call_sites(method):
            if mnemonic in INVOKE_MNEMONICS:
                self._add_callee(callees, *member_ref(self.class_file, index))
            elif mnemonic == INVOKEDYNAMIC:
                for ref_index in dynamic_targets(self.class_file, index):
                    self._add_callee(callees, *member_ref(self.class_file, ref_index))
        return callees

    def _add_callee(self, callees: list[MethodRecord], owner: str, name: str, descriptor: str):
        if self.context.keeps_call_to(owner):
            callees.append(make_stub(owner, name, descriptor))


def read_class_methods(path: str, exclude_patterns, context: ScanContext) -> list[MethodRecord]:
    """
    Reads one class file into MethodRecords. Never raises: an excluded or
    unreadable artifact yields an empty list.
    """
    if is_excluded(path, exclude_patterns):
        return []
    try:
        class_file = read_class_file(read_bytes(path))
        return MethodExtractor(class_file, context).extract()
    except Exception as e:
        # One bad artifact must not sink the batch
        logger.error(f"Failed to read call chain from {path}: {e}")
        return []
