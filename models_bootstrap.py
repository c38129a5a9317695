# models_bootstrap.py
from client import models as _client_models
from employee import models as _employee_models
from costcenter import models as _costcenter_models
from location import models as _location_models
from assignment import models as _assignment_models
