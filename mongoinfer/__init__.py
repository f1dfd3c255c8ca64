import importlib

mod = "mongoinfer"
class LazyLoader:
    """    
    Lazy loader for the mongoinfer functions to keep pymongo off the import path until needed.    
    """
    def __init__(self, mappings):
        self._modules = {}
        self._mappings = mappings

    def _load_module(self, module_name):
        if module_name not in self._modules:
            self._modules[module_name] = importlib.import_module(module_name)
        return self._modules[module_name]

    def __getattr__(self, item):
        if item.startswith('__'):
            raise AttributeError(item)
        if item in self._mappings:
            module_name, func_name = self._mappings[item]
            module = self._load_module(module_name)
            return getattr(module, func_name)
        else:
            return self._load_module(f"{mod}.{item}")

# Define the functions and their corresponding module paths
_mappings = {
    "infer_schema": (f"{mod}.schema_inference", "infer_schema"),
    "compatible_type": (f"{mod}.schema_inference", "compatible_type"),
    "canonicalize_type": (f"{mod}.schema_inference", "canonicalize_type"),
    "get_schema_from_document": (f"{mod}.schema_inference", "get_schema_from_document"),
    "tree_aggregate": (f"{mod}.tree_aggregate", "tree_aggregate"),
    "ReadConfig": (f"{mod}.config", "ReadConfig"),
    "infer_collection_schema": (f"{mod}.mongotoavro", "infer_collection_schema"),
    "convert_mongo_to_avro": (f"{mod}.mongotoavro", "convert_mongo_to_avro"),
    "convert_mongo_to_struct": (f"{mod}.mongotoavro", "convert_mongo_to_struct"),
    "convert_ejson_to_avro": (f"{mod}.mongotoavro", "convert_ejson_to_avro"),
    "convert_struct_to_avro_schema": (f"{mod}.structtoavro", "convert_struct_to_avro_schema"),
}

_lazy_loader = LazyLoader(_mappings)

def __getattr__(name):
    return getattr(_lazy_loader, name)
