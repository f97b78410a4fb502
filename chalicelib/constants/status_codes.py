http200 = 200
http201 = 201
