import json

from jsonschema import validate
from jsonschema.exceptions import ValidationError

from pnpy.pn.importer import SCHEMA_PATH, load_net
from pnpy.simulation.history import AnimationHistory


json_data = json.load(open("ex3.json", "r"))
schema = json.load(open(SCHEMA_PATH, "r"))

try:
    validate(instance=json_data, schema=schema)
    print("JSON data is valid.")
except ValidationError as e:
    print("JSON data is invalid.")
    print(f"Error message: {e.message}")

net, context = load_net("ex3.json")
print(net)

history = AnimationHistory(net)
for t in history.random_fire(6):
    print("Fired", t.id)
print(net.marking)

# rewind two steps, then replay one
history.step_backward()
history.step_backward()
print(net.marking)
history.step_forward()
print(net.marking)
